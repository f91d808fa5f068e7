"""Run the minime memory service (FastAPI + uvicorn)."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import uvicorn

# Ensure project root is on sys.path when invoked as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from minime.config import CONFIG


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the minime memory service")
    parser.add_argument("--host", default=None, help=f"Host to bind (default: MINIME_SERVER_HOST or {CONFIG.server.host})")
    parser.add_argument("--port", type=int, default=None, help=f"Port to bind (default: MINIME_SERVER_PORT or {CONFIG.server.port})")
    parser.add_argument("--reload", action="store_true", help="Enable autoreload (dev only)")
    args = parser.parse_args(argv)

    uvicorn.run(
        "minime.web.app:app",
        host=args.host or CONFIG.server.host,
        port=args.port or CONFIG.server.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
