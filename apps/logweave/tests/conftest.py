from datetime import datetime, timezone

import pytest

from logweave import MemorySink, create_logger

FIXED_NOW = datetime(2026, 10, 19, 7, 45, 0, tzinfo=timezone.utc)
FIXED_ISO = FIXED_NOW.isoformat(timespec="microseconds")


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def fixed_iso() -> str:
    return FIXED_ISO


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def errors() -> list:
    """Collects everything routed to a logger's error handler."""
    return []


@pytest.fixture
def make_logger(memory_sink, errors, fixed_clock):
    """Factory for loggers writing only to ``memory_sink`` with a fixed clock."""

    def factory(**overrides):
        options = {
            "sinks": [memory_sink],
            "use_default_console_sink": False,
            "on_error": errors.append,
            "clock": fixed_clock,
        }
        options.update(overrides)
        return create_logger(**options)

    return factory
