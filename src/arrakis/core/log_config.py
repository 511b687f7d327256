# src/arrakis/core/log_config
import logging

from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False, log_to_file: bool = False, log_name: str = "arrakis.log") -> None:
    """
    Configure logging to console, and optionally to a log file.

    Args:
        debug (bool): Log at DEBUG instead of INFO.
        log_to_file (bool): Add a file handler writing to ./logging/`log_name`.
        log_name (str): File name of the log file.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    log_handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_to_file:
        log_dir = Path("logging")
        log_dir.mkdir(exist_ok=True)
        log_handlers.append(logging.FileHandler(log_dir / log_name, mode="w"))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=log_handlers,
        force=True
    )
    logging.captureWarnings(True)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
