import logging

import pytest
import structlog

from emitter.core.config import get_settings
from emitter.core.event_bus import EventEmitter
from emitter.core.logging import ROOT_LOGGER


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()
    logging.getLogger(ROOT_LOGGER).setLevel(logging.NOTSET)


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()
