"""
Entrypoint for running the web server.
"""

import logging
import os
from logging.config import dictConfig

import uvicorn


def configure_logging(level: str = "INFO") -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": level,
                }
            },
            "loggers": {
                "": {"handlers": ["console"], "level": level},
                "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
            },
        }
    )


def main() -> None:
    level = os.getenv("SE_LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    configure_logging(level)

    host = os.getenv("SE_HOST", "127.0.0.1")
    port = int(os.getenv("SE_PORT", "8000"))
    uvicorn.run("statement_extractor.web.app:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
