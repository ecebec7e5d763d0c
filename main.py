#!/usr/bin/env python3
import logging
import os
import sys

import uvicorn

from app.app import create_app
from app.core.exceptions import DatabaseConnectionError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

try:
    app = create_app()
except DatabaseConnectionError as e:
    # Fail fast: there is nothing useful to serve without the database
    logging.getLogger("main").critical(str(e))
    sys.exit(1)


if __name__ == "__main__":
    host = os.getenv("CF_HOST", "127.0.0.1")
    port = int(os.getenv("CF_PORT", "8000"))
    reload_enabled = os.getenv("CF_DEV_MODE", "false").lower() == "true"

    print(f"Starting CF Tracker on {host}:{port}")
    uvicorn.run("main:app", host=host, port=port, reload=reload_enabled)
