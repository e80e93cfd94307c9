#!/usr/bin/env python3
"""
Health Check Script for the migration server
Can be scheduled with Windows Task Scheduler or cron
"""

import os
import sys
import time
from pathlib import Path

import httpx

BACKEND_URL = os.getenv("MIGRATOR_HEALTH_URL", "http://localhost:8000/health")
MAX_RETRIES = 3
RETRY_DELAY = 5


def check_service(url):
    """Check if a service is responding."""
    error = "Max retries exceeded"
    for attempt in range(MAX_RETRIES):
        try:
            response = httpx.get(url, timeout=5)
            if response.status_code == 200:
                return True, None
            error = f"HTTP {response.status_code}"
        except httpx.HTTPError as e:
            error = str(e)
        if attempt < MAX_RETRIES - 1:
            time.sleep(RETRY_DELAY)
    return False, error


def main():
    backend_ok, backend_error = check_service(BACKEND_URL)

    log_file = Path("data/health-check.log")
    log_file.parent.mkdir(exist_ok=True)

    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    message = f"{timestamp} - OK: Migration server healthy" if backend_ok \
        else f"{timestamp} - ERROR: Migration server DOWN: {backend_error}"

    with open(log_file, "a") as f:
        f.write(message + "\n")
    print(message)
    return 0 if backend_ok else 1


if __name__ == "__main__":
    sys.exit(main())
