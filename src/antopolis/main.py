"""Command-line entrypoint for the Antopolis battle API."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from antopolis.config import get_settings
from antopolis.database import create_db_engine, init_db


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Antopolis battle API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable autoreload (dev mode)",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing database tables before serving",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.init_db:
        engine = create_db_engine(settings)
        try:
            init_db(engine)
        finally:
            engine.dispose()

    uvicorn.run(
        "antopolis.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
