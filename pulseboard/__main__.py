"""
Run the Pulseboard server.

    python -m pulseboard [--host 0.0.0.0] [--port 8000] [--reload]
"""

import argparse

import uvicorn

from pulseboard.config import settings
from pulseboard.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Pulseboard API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    setup_logging("pulseboard", settings.LOG_LEVEL, settings.LOG_FILE or None)
    uvicorn.run(
        "pulseboard.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
