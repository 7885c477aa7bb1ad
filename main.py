#!/usr/bin/env python3
"""
Taskboard -- project, task, and note tracking API.

Usage:
  python main.py
  python main.py --host 0.0.0.0 --port 8080
  python main.py --reload

Environment variables (see core/config.py for the full list):
  JWT_ACCESS_SECRET    Required unless DEBUG=true. At least 32 characters.
  JWT_REFRESH_SECRET   Required unless DEBUG=true. Must differ from the access secret.
  DATABASE_URL         SQLAlchemy URL. Defaults to taskboard.db in the repo root.
  SMTP_HOST            Outbound mail server. Empty = links are logged, not sent.
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the Taskboard API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    # Import string, not the app object, so --reload can re-import it.
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
