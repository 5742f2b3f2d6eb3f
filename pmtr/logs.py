# pmtr/logs.py
import logging
from typing import Optional


def setup_logging(
    log_file: Optional[str] = None,
    debug: bool = False,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the "pmtr" logger.

    - log_file: debug-level to a file (safe next to the live table)
    - debug: debug-level to stderr
    - verbose: info-level to stderr
    """
    logger = logging.getLogger("pmtr")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if log_file:
        fh = logging.FileHandler(log_file, mode="w")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if debug or verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.DEBUG if debug else logging.INFO)
        sh.setFormatter(formatter)
        logger.addHandler(sh)

    # nothing configured: keep stderr clean for the live table
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
