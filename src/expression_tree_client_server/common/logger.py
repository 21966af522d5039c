"""Package-wide logger shared by the server, worker and client."""
import logging
import os


LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(processName)s: %(message)s"


def get_logger(name: str = "expression_tree_client_server") -> logging.Logger:
    """
    Return the package logger, attaching a stream handler on first use.

    The level is read from the ``LOG_LEVEL`` environment variable (default INFO).

    :param str name: Logger name

    :return: Configured logger
    :rtype: logging.Logger
    """
    log = logging.getLogger(name)
    # Configure only once, even if the module is imported by several processes
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    return log


logger: logging.Logger = get_logger()
