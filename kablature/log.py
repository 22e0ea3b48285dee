"""Logging setup for the command-line entry point."""

import logging
import sys

LOGGER_NAME = "kablature"

VERBOSE_FORMAT = "%(levelname)-7s %(name)s: %(message)s (%(filename)s:%(lineno)d)"
QUIET_FORMAT = "%(levelname)s: %(message)s"


def setup_logger(verbose: bool = False) -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Verbose mode shows every pipeline stage with its call site. Otherwise
    only warnings and errors get through. Records go to stderr so they
    never mix with the tablature, tokens or symbols written to stdout.
    Calling this again replaces the handler instead of stacking a new one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else QUIET_FORMAT))
    logger.addHandler(handler)
    return logger
