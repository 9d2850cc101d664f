"""Taskboard entry point.

    flet run taskboard/main.py

Configuration is read from TASKBOARD_* environment variables (or a .env file
next to this module); see config.AppConfig.
"""
import logging
import sys

import flet as ft

from app import create_app
from config import AppConfig

_NOISY_LOGGERS = ("flet", "flet_core", "flet_desktop", "httpx", "httpcore", "aiosqlite", "asyncio")


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging once, before the first log line.

    Third-party libraries are kept at WARNING so app logs stay readable.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    if not any(getattr(h, "_taskboard", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s", "%H:%M:%S")
        )
        handler._taskboard = True
        root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main(page: ft.Page) -> None:
    config = AppConfig.from_env()
    setup_logging(config.log_level)
    logging.getLogger(__name__).info(f"Starting Taskboard (app_id={config.app_id})")
    create_app(page, config)


if __name__ == "__main__":
    ft.run(main)
