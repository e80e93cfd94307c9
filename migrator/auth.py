"""
API Authentication & Rate Limiting Middleware

The migration service receives wallet signatures and encrypted keys, so
every route except /health needs either a localhost client (development)
or a valid X-API-Key. Only SHA-256 hashes of keys are kept.
"""

import os
import time
import hashlib
import secrets
import logging
from collections import defaultdict
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("auth")

API_KEY_ENV = "MIGRATOR_API_KEY"

_valid_key_hashes: set = set()


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def generate_api_key() -> str:
    """Generate a new API key. Display it once, then store only the hash."""
    key = f"wkm_{secrets.token_urlsafe(32)}"
    key_hash = _hash_key(key)
    _valid_key_hashes.add(key_hash)
    logger.info(f"New API key generated (hash: {key_hash[:12]}...)")
    return key


def load_api_key_from_env():
    key = os.getenv(API_KEY_ENV)
    if key:
        _valid_key_hashes.add(_hash_key(key))
        logger.info("API key loaded from environment")
        return
    logger.warning(f"No {API_KEY_ENV} set, generating a temporary key")
    temp_key = generate_api_key()
    print(f"\n{'='*60}")
    print(f"  TEMPORARY API KEY (set {API_KEY_ENV} env var to persist):")
    print(f"  {temp_key}")
    print(f"{'='*60}\n")


def validate_api_key(key: str) -> bool:
    if not key:
        return False
    return _hash_key(key) in _valid_key_hashes


# ── Rate Limiting ───────────────────────────────────────────────────

class RateLimiter:
    """Sliding-window request counter per client IP."""

    def __init__(self, max_requests: int = 60, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: dict = defaultdict(list)

    def is_allowed(self, client_ip: str) -> bool:
        cutoff = time.time() - self.window_seconds
        recent = [t for t in self._requests[client_ip] if t > cutoff]
        if len(recent) >= self.max_requests:
            self._requests[client_ip] = recent
            return False
        recent.append(time.time())
        self._requests[client_ip] = recent
        return True

    def get_remaining(self, client_ip: str) -> int:
        cutoff = time.time() - self.window_seconds
        current = len([t for t in self._requests.get(client_ip, []) if t > cutoff])
        return max(0, self.max_requests - current)

    def reset(self):
        self._requests.clear()


# Migration is CPU-bound (PBKDF2), keep the budget low
rate_limiter = RateLimiter(max_requests=30, window_seconds=60)


# ── Middleware ──────────────────────────────────────────────────────

class AuthMiddleware(BaseHTTPMiddleware):
    """
    Exempt paths (no auth, no rate limit): /health and the API docs.
    """

    EXEMPT_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    LOCALHOST = ("127.0.0.1", "localhost", "::1")

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not rate_limiter.is_allowed(client_ip):
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded. Try again later."})

        allow_localhost = os.getenv("MIGRATOR_ALLOW_LOCALHOST", "true").lower() == "true"
        if not (allow_localhost and client_ip in self.LOCALHOST):
            if not validate_api_key(request.headers.get("X-API-Key")):
                logger.warning(f"Invalid API key attempt from {client_ip}")
                return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key"})

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(rate_limiter.get_remaining(client_ip))
        return response


def get_bind_host(default: str = "127.0.0.1") -> str:
    """Localhost only unless MIGRATOR_BIND_HOST says otherwise."""
    host = os.getenv("MIGRATOR_BIND_HOST", default)
    if host == "0.0.0.0":
        logger.warning(
            "Server binding to 0.0.0.0 is accessible from network. "
            "Ensure API key auth is configured and firewall rules are in place."
        )
    return host
