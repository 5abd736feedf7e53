"""Logging setup shared by the chaindeck CLI and library modules."""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER = "chaindeck"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return a logger for a module.

    Modules outside the chaindeck package are nested under the root
    chaindeck logger so a single ``setup_logging`` call covers them.
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the chaindeck logger hierarchy.

    Args:
        verbose: Emit DEBUG records (cache reads and writes included)
        quiet: Only emit errors
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Re-running setup (e.g. several CLI invocations in one test process)
    # must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    # web3 and its HTTP stack are chatty at DEBUG
    for noisy in ("web3", "urllib3", "aiohttp"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
