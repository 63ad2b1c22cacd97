#!/usr/bin/env python3
"""
LinguaLens Health Check Script
==============================
Verify a deployment from the outside.

Checks:
1. FastAPI Backend (/health endpoint)
2. SQLite database file
3. Tesseract OCR binary

Output:
    - "GREEN" if ALL checks pass < 200ms
    - "YELLOW" if all pass but some > 200ms
    - "RED" if any check fails
"""

import os
import sqlite3
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx
import pytesseract
from sqlalchemy.engine import make_url

# Configuration
API_URL = os.getenv("API_URL", "http://localhost:8000")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/lingualens.db")

# Threshold for "fast" response (ms)
FAST_THRESHOLD_MS = 200


@dataclass
class HealthResult:
    """Result of a health check."""
    service: str
    healthy: bool
    latency_ms: float
    error: Optional[str] = None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def check_api(client: Optional[httpx.Client] = None) -> HealthResult:
    """GET /health; a 503 body still names the failing dependency."""
    start = time.perf_counter()
    client = client or httpx.Client(base_url=API_URL, timeout=5.0)
    try:
        response = client.get("/health")
    except httpx.HTTPError as e:
        return HealthResult("API", False, _elapsed_ms(start), str(e))
    finally:
        client.close()

    if response.status_code == 200:
        return HealthResult("API", True, _elapsed_ms(start))

    try:
        services = response.json().get("services", {})
        failing = [name for name, state in services.items() if state == "unhealthy"]
        detail = f"HTTP {response.status_code}: {', '.join(failing) or 'unknown'}"
    except ValueError:
        detail = f"HTTP {response.status_code}"
    return HealthResult("API", False, _elapsed_ms(start), detail)


def check_database(database_url: str = DATABASE_URL) -> HealthResult:
    """Open the SQLite file and run ``SELECT 1``. Other backends are reported by the API."""
    start = time.perf_counter()
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return HealthResult("Database", True, _elapsed_ms(start), f"{url.get_backend_name()} (checked by API)")

    db_path = Path(url.database or "")
    if not url.database or not db_path.exists():
        # Created on first startup
        return HealthResult("Database", True, _elapsed_ms(start), "DB not created yet (OK)")

    try:
        conn = sqlite3.connect(str(db_path), timeout=5)
        try:
            result = conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        return HealthResult("Database", False, _elapsed_ms(start), str(e))

    if result and result[0] == 1:
        return HealthResult("Database", True, _elapsed_ms(start))
    return HealthResult("Database", False, _elapsed_ms(start), "Unexpected query result")


def check_tesseract() -> HealthResult:
    start = time.perf_counter()
    try:
        version = pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError:
        return HealthResult("Tesseract", False, _elapsed_ms(start), "tesseract not installed")
    return HealthResult("Tesseract", True, _elapsed_ms(start), f"v{version}")


def overall_status(results: List[HealthResult]) -> str:
    if not all(r.healthy for r in results):
        return "RED"
    if all(r.latency_ms < FAST_THRESHOLD_MS for r in results):
        return "GREEN"
    return "YELLOW"


def format_result(result: HealthResult) -> str:
    """Format a health result for display."""
    status = "✓" if result.healthy else "✗"
    color = "\033[92m" if result.healthy else "\033[91m"
    reset = "\033[0m"

    latency_str = f"{result.latency_ms:.1f}ms"
    if result.latency_ms > FAST_THRESHOLD_MS:
        latency_str = f"\033[93m{latency_str}\033[0m"  # Yellow for slow

    line = f"  {color}{status}{reset} {result.service}: {latency_str}"
    if result.error:
        line += f" ({result.error})"

    return line


def main():
    """Run all health checks and report status."""
    print("\n" + "=" * 50)
    print("  LINGUALENS HEALTH CHECK")
    print("=" * 50 + "\n")

    results = [check_api(), check_database(), check_tesseract()]

    for result in results:
        print(format_result(result))
    print()

    status = overall_status(results)
    color = {"GREEN": "\033[92m", "YELLOW": "\033[93m", "RED": "\033[91m"}[status]
    print(color + "=" * 50)
    print(f"  STATUS: {status}")
    if status == "RED":
        failed = [r.service for r in results if not r.healthy]
        print(f"  Failed checks: {', '.join(failed)}")
    print("=" * 50 + "\033[0m\n")

    return 1 if status == "RED" else 0


if __name__ == "__main__":
    sys.exit(main())
