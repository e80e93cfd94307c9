"""
FastAPI Server: in-memory wallet file migration

The wallet dApp signs a message with the old and the new wallet, then posts
both signatures and the wallet files here. Files come back re-encrypted
under the new signature, with new names. Nothing is written to disk and
nothing outlives the request.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from dotenv import load_dotenv
load_dotenv()

from migrator.auth import AuthMiddleware, get_bind_host, load_api_key_from_env
from migrator.cipher import SignatureCipher
from migrator.config import configure_logging, settings
from migrator.engine import FileOutcome, MigrationEngine, MigrationReport, verify_file
from migrator.errors import ParseError, PreconditionError
from migrator.records import count_wallets, parse_wallet_json

logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_api_key_from_env()
    logger.info("Migration server starting")
    yield
    logger.info("Migration server shutting down")


app = FastAPI(
    title="Wallet Key Migrator",
    description="Re-encrypts wallet private keys from an old wallet signature to a new one",
    version="1.0.0",
    lifespan=lifespan,
)

# CORSMiddleware is outer (processes first), AuthMiddleware is inner
app.add_middleware(AuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Models ──────────────────────────────────────────────────────────

class UploadedFile(BaseModel):
    filename: str
    content: str


class MigrateRequest(BaseModel):
    old_signature: str
    new_signature: str
    new_address: Optional[str] = None
    files: list[UploadedFile]


class VerifyRequest(BaseModel):
    signature: str
    files: list[UploadedFile]


def _parse_uploads(uploads: list[UploadedFile]) -> list:
    """WalletFile or ParseError per upload, in upload order."""
    parsed = []
    for upload in uploads:
        try:
            parsed.append(parse_wallet_json(upload.filename, upload.content))
        except ParseError as e:
            logger.warning(str(e))
            parsed.append(e)
    return parsed


def _migrate(req: MigrateRequest) -> MigrationReport:
    parsed = _parse_uploads(req.files)
    wallet_files = [p for p in parsed if not isinstance(p, ParseError)]
    logger.info(f"Loaded {len(wallet_files)} file(s) with {count_wallets(wallet_files)} wallet(s) total")

    # Fresh cipher per request so derived keys never outlive it
    engine = MigrationEngine(
        cipher=SignatureCipher.from_settings(settings),
        old_passphrase=req.old_signature,
        new_passphrase=req.new_signature,
        new_address=req.new_address,
    )
    # Signatures are checked against every upload, so a batch where nothing
    # parses still gets a per-file report
    engine.check_preconditions(req.files)
    outcomes = engine.run(wallet_files).outcomes if wallet_files else []

    migrated = iter(outcomes)
    report = MigrationReport()
    for upload, item in zip(req.files, parsed):
        if isinstance(item, ParseError):
            report.outcomes.append(FileOutcome(source=upload.filename, error=item))
        else:
            report.outcomes.append(next(migrated))
    return report


# ── Routes ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/migrate")
async def migrate(req: MigrateRequest):
    try:
        report = await asyncio.to_thread(_migrate, req)
    except PreconditionError as e:
        raise HTTPException(400, str(e))
    return report.to_dict(include_content=True)


@app.post("/api/verify")
async def verify(req: VerifyRequest):
    if not req.signature:
        raise HTTPException(400, "Signature is required")
    if not req.files:
        raise HTTPException(400, "No wallet files uploaded")

    def _verify() -> list:
        cipher = SignatureCipher.from_settings(settings)
        results = []
        for item in _parse_uploads(req.files):
            if isinstance(item, ParseError):
                results.append({"source": item.filename, "error": str(item), "records": []})
                continue
            checks = verify_file(item, cipher, req.signature)
            results.append({"source": item.name, "records": [c.to_dict() for c in checks]})
        return results

    return {"files": await asyncio.to_thread(_verify)}


# ══════════════════════════════════════════════════════════════════════
# Entry Point
# ══════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn

    configure_logging()
    host = get_bind_host(settings.api_host)
    port = settings.api_port

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run(app, host=host, port=port)
