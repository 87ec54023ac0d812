# MDTasks Logging Setup
# Rich console handler for library logs, plus an optional plain log file

import logging
from pathlib import Path

from rich.console import Console as RichConsole
from rich.logging import RichHandler

LOGGER_NAME = "mdtasks"

_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(*, verbose: bool = False, log_file: str | Path | None = None, colored: bool = True) -> logging.Logger:
    """
    Configure logging for the ``mdtasks`` package.

    Safe to call more than once; previously installed handlers are replaced.

    Args:
        verbose: Log DEBUG instead of INFO to the console.
        log_file: Also write everything (DEBUG and up) to this file.
        colored: Allow colors in console log output.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=RichConsole(stderr=True, no_color=not colored),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger
