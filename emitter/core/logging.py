import logging
import sys
from typing import Optional

import structlog
from emitter.core.config import get_settings

ROOT_LOGGER = "emitter"


def setup_logging(level: Optional[str] = None):
    """
    Opt-in JSON logging for applications that embed the emitter.

    Library code never calls this. Until a host does (or configures stdlib
    logging itself), records below WARNING are dropped by the stdlib
    logger behind every structlog logger handed out by get_logger().
    """
    settings = get_settings()
    level = level or settings.log_level

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger(ROOT_LOGGER).setLevel(level)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def get_logger(name: str = ROOT_LOGGER):
    # Wrapping a stdlib logger keeps its level filtering in force even when
    # structlog has not been configured.
    return structlog.wrap_logger(
        logging.getLogger(name),
        service=get_settings().service_name,
    )
