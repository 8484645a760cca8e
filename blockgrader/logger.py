"""Console logger setup for the grader CLI."""

import logging


def create_logger(name: str = "blockgrader", silent: bool = False, verbose: bool = False) -> logging.Logger:
    """
    Create a basic logger for non-interactive output.

    Args:
        name: Logger name. Engine modules log under "blockgrader.*".
        silent: If True, use NullHandler (no output).
        verbose: If True, log at DEBUG instead of WARNING.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.handlers.clear()

    if not silent:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    else:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
