import logging
from pythonjsonlogger import jsonlogger

from keysmith.core.request_id import RequestIdFilter


def setup_logging(level: str) -> None:
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove default handlers to avoid duplicate logs
    while logger.handlers:
        logger.handlers.pop()

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)
