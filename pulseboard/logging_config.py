"""
Logging configuration for Pulseboard.

Provides one logging setup shared by the API, the real-time hub and the
background workers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union


def setup_logging(
    component_name: str = "pulseboard",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure root logging for a Pulseboard process.

    Args:
        component_name: Component identifier shown in every line (e.g. 'api')
        level: Logging level name or number
        log_file: Optional file path for log output
        format_string: Custom format string (default provided)

    Returns:
        Logger named after the component
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if format_string is None:
        format_string = f"[%(asctime)s] [{component_name.upper()}] %(levelname)s %(name)s - %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(component_name)
    logger.info("%s logging initialized (level=%s)", component_name.upper(), logging.getLevelName(level))
    return logger
