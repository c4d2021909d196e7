"""Logging helpers shared by the planner modules and the CLI.

Library modules only ask for a named logger; the root handler is installed by
the entry point through ``configure_root_logger`` so that embedding code keeps
control of its own logging setup.
"""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER_INITIALISED = False


def configure_root_logger(level: int | str = logging.INFO) -> None:
    """Install one formatted stream handler on the root logger."""

    global _LOGGER_INITIALISED
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _LOGGER_INITIALISED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
