#!/usr/bin/env python3
"""
Action Bank Entry Point

Starts the FastAPI server with the configured storage backend.
"""

import sys

import uvicorn

from action_bank.api import create_app
from action_bank.config import get_config
from action_bank.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level)

    logger.info("Starting Action Bank", extra={'extra': {
        'storage_backend': config.storage_backend,
        'host': config.api_host,
        'port': config.api_port,
    }})

    try:
        uvicorn.run(create_app(), host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down Action Bank")
    except Exception:
        logger.critical("Error starting server", exc_info=True)
        sys.exit(1)
