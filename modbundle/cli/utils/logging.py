import logging
import sys


logger = logging.getLogger("modbundle")


def configure_logging(debug: bool):
    """
    Configures the logging system based on the debug flag.

    Debug mode enables the verbose channel (resolution and bundling details).
    """
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.hasHandlers():
        logger.addHandler(handler)
