"""
Logger end-to-end tests: call shapes, enrichment, gating, error routing.
"""

from __future__ import annotations

from datetime import datetime, timezone

import orjson
import pytest

from logweave import (
    BaseSink,
    ConsoleSink,
    DeliveryError,
    EnrichmentError,
    Logger,
    MemorySink,
    ValidationError,
    create_logger,
)
from logweave.record import EnrichedRecord


class FailingSink(BaseSink):
    def deliver(self, record: EnrichedRecord) -> None:
        raise IOError("disk full")


# ================================
# End to End
# ================================


class TestEndToEnd:
    """Logged object shape"""

    def test_info_with_meta(self, make_logger, memory_sink, fixed_iso) -> None:
        """info(message, meta) delivers one complete record"""
        logger = make_logger()
        logger.info("hello", {"x": 1})

        assert len(memory_sink.records) == 1
        record = memory_sink.records[0]
        assert record["level"] == "info"
        assert record["message"] == "hello"
        assert record["x"] == 1
        assert record["timestamp"] == fixed_iso
        assert datetime.fromisoformat(record["timestamp"]).tzinfo is not None
        assert '"message":"hello"' in record.serialized

    def test_serialized_matches_fields(self, make_logger, memory_sink, fixed_iso) -> None:
        """serialized is sorted JSON of the final fields"""
        make_logger().info("test", {"someKey": "someValue"})
        record = memory_sink.records[0]
        assert record.serialized == (
            f'{{"level":"info","message":"test","someKey":"someValue","timestamp":"{fixed_iso}"}}'
        )

    def test_meta_message_used_without_message_argument(self, make_logger, memory_sink) -> None:
        """A meta message is used when no message argument is given"""
        make_logger().info({"message": "test"})
        record = memory_sink.records[0]
        assert record["message"] == "test"
        assert '"message":"test"' in record.serialized

    def test_explicit_message_wins(self, make_logger, memory_sink) -> None:
        """The message argument wins over a meta message"""
        make_logger().info("test", {"message": "test2"})
        record = memory_sink.records[0]
        assert record["message"] == "test"
        assert '"message":"test"' in record.serialized
        assert "test2" not in record.serialized

    def test_object_only_has_no_message_key(self, make_logger, memory_sink) -> None:
        """An object-only call has no message key"""
        make_logger().log("info", {"a": 1})
        record = memory_sink.records[0]
        assert record["a"] == 1
        assert "message" not in record
        assert '"message"' not in record.serialized

    def test_mapping_message_flattened(self, make_logger, memory_sink) -> None:
        """A mapping message is spread into the record"""
        make_logger().log({"level": "debug", "message": {"a": 1}, "b": 2})
        record = memory_sink.records[0]
        assert record.to_dict() == {"level": "debug", "a": 1, "b": 2, "timestamp": record.timestamp}

    def test_shape_invariance(self, make_logger, memory_sink) -> None:
        """Every call shape with the same content serializes identically"""
        logger = make_logger(service_name="svc")
        logger.log("warn", "hi", {"x": 1})
        logger.log("warn", {"message": "hi", "x": 1})
        logger.log({"level": "warn", "message": "hi", "x": 1})
        logger.warn("hi", {"x": 1})
        logger.warn("hi", x=1)
        logger.warn({"message": "hi", "x": 1})
        serialized = {r.serialized for r in memory_sink.records}
        assert len(memory_sink.records) == 6
        assert len(serialized) == 1

    def test_every_leveled_method(self, make_logger, memory_sink) -> None:
        """Each leveled method logs at its own level"""
        logger = make_logger()
        for name in ("error", "warn", "info", "debug", "verbose", "silly"):
            getattr(logger, name)(name)
        assert [r["level"] for r in memory_sink.records] == ["error", "warn", "info", "debug", "verbose", "silly"]
        assert [r.message for r in memory_sink.records] == ["error", "warn", "info", "debug", "verbose", "silly"]

    def test_returns_enriched_record(self, make_logger, memory_sink) -> None:
        """Log methods return the delivered record"""
        record = make_logger().info("hi")
        assert record is memory_sink.records[0]

    def test_shared_caller_object_not_contaminated(self, make_logger, memory_sink) -> None:
        """A meta object shared between calls stays untouched"""
        shared = {"k": 1}
        logger = make_logger(service_name="svc")
        logger.info("first", shared)
        logger.warn({"message": {"k": 2}})
        logger.error("third", shared)
        assert shared == {"k": 1}
        assert memory_sink.records[2]["k"] == 1

    def test_records_are_read_only(self, make_logger, memory_sink) -> None:
        """Delivered records cannot be modified"""
        make_logger().info("hi")
        with pytest.raises(TypeError):
            memory_sink.records[0]["x"] = 1  # type: ignore[index]

    def test_timestamps_non_decreasing(self, memory_sink) -> None:
        """Sequential records never go back in time"""
        logger = create_logger(sinks=[memory_sink], use_default_console_sink=False)
        for i in range(20):
            logger.info("tick", n=i)
        stamps = [datetime.fromisoformat(r["timestamp"]) for r in memory_sink.records]
        assert stamps == sorted(stamps)
        assert all(ts.tzinfo is not None for ts in stamps)


# ================================
# Service Tag
# ================================


class TestServiceName:
    """serviceName injection"""

    def test_configured_name_added(self, make_logger, memory_sink) -> None:
        """The configured serviceName is injected"""
        make_logger(service_name="svc").info({"a": 1})
        record = memory_sink.records[0]
        assert record["a"] == 1
        assert record["serviceName"] == "svc"

    def test_caller_name_not_overridden(self, make_logger, memory_sink) -> None:
        """A caller serviceName is kept"""
        make_logger(service_name="svc").info({"a": 1, "serviceName": "other"})
        record = memory_sink.records[0]
        assert record["serviceName"] == "other"
        assert "svc" not in record.serialized

    def test_absent_without_configuration(self, make_logger, memory_sink) -> None:
        """No serviceName without configuration"""
        make_logger().info("hi")
        assert "serviceName" not in memory_sink.records[0]


# ================================
# Gating and Silent Mode
# ================================


class TestGating:
    """Level threshold, per-sink thresholds, silent mode"""

    def test_below_minimum_never_reaches_sinks(self, make_logger, memory_sink) -> None:
        """Records below the threshold reach no sink"""
        logger = make_logger(level="warn")
        assert logger.debug("hidden") is None
        assert logger.info({"a": 1}) is None
        assert memory_sink.records == []
        logger.error("shown")
        assert [r.message for r in memory_sink.records] == ["shown"]

    def test_level_can_be_changed(self, make_logger, memory_sink) -> None:
        """The threshold can be changed at runtime"""
        logger = make_logger(level="debug")
        logger.level = "silly"
        assert logger.level == "silly"
        logger.silly("now visible")
        assert len(memory_sink.records) == 1
        logger.level = None
        assert logger.level is None

    def test_invalid_level_setting_rejected(self, make_logger) -> None:
        """Setting an unknown level fails"""
        logger = make_logger()
        with pytest.raises(ValidationError):
            logger.level = "loud"

    def test_is_level_enabled(self, make_logger) -> None:
        """is_level_enabled follows the threshold"""
        logger = make_logger(level="info")
        assert logger.is_level_enabled("warn")
        assert not logger.is_level_enabled("debug")

    def test_silent_runs_pipeline_without_sinks(self, make_logger, memory_sink) -> None:
        """Silent mode enriches but delivers nothing"""
        logger = make_logger(silent=True)
        record = logger.info("quiet", {"x": 1})
        assert record is not None
        assert record["x"] == 1
        assert memory_sink.records == []

    def test_invalid_level_raises_before_dispatch(self, make_logger, memory_sink, errors) -> None:
        """An unknown level raises and reaches neither sinks nor the error handler"""
        logger = make_logger()
        with pytest.raises(ValidationError):
            logger.log("loud", "hi")
        with pytest.raises(ValidationError):
            logger.log({"level": "fatal"})
        assert memory_sink.records == []
        assert errors == []


# ================================
# Error Channel
# ================================


class TestErrors:
    """Sink failures and the error handler"""

    def test_failure_isolated_and_reported(self, make_logger, memory_sink, errors) -> None:
        """A failing sink is reported once per record"""
        failing = FailingSink()
        logger = make_logger(sinks=[failing, memory_sink])
        logger.info("one")
        logger.info("two")
        assert [r.message for r in memory_sink.records] == ["one", "two"]
        assert len(errors) == 2
        assert all(isinstance(e, DeliveryError) and e.sink is failing for e in errors)

    def test_default_handler_prints_to_stderr(self, memory_sink, capsys) -> None:
        """Without on_error, failures are printed to stderr"""
        logger = create_logger(sinks=[FailingSink(), memory_sink], use_default_console_sink=False)
        logger.info("hi")
        assert "disk full" in capsys.readouterr().err
        assert len(memory_sink.records) == 1

    def test_configured_handler_replaces_default(self, memory_sink, capsys) -> None:
        """on_error replaces the stderr handler"""
        seen = []
        logger = create_logger(sinks=[FailingSink()], use_default_console_sink=False, on_error=seen.append)
        logger.info("hi")
        assert len(seen) == 1
        assert capsys.readouterr().err == ""

    def test_silent_mode_still_reports_late_failures(self, make_logger, errors) -> None:
        """Late sink failures are reported in silent mode"""
        failing = FailingSink()
        logger = make_logger(sinks=[failing], silent=True)
        logger.info("hi")
        assert errors == []
        failing.events.emit("error", {"message": "late failure"})
        assert len(errors) == 1
        assert errors[0].details["message"] == "late failure"

    def test_processor_failure_routed_to_error_channel(self, make_logger, memory_sink, errors) -> None:
        """A failing processor drops the record and reports it"""
        def broken(logger, method_name, event_dict):
            raise ValueError("nope")

        callbacks = []
        logger = make_logger(processors=[broken])
        assert logger.info("hi", callbacks.append) is None
        assert memory_sink.records == []
        assert len(errors) == 1
        assert isinstance(errors[0], EnrichmentError)
        assert callbacks == [None]


# ================================
# Callbacks and Sink Management
# ================================


class TestCallbacksAndSinks:
    """Completion callbacks, add/remove/clear/close, default console sink"""

    def test_callback_after_dispatch(self, make_logger, memory_sink) -> None:
        """The callback runs after sinks received the record"""
        observed = []

        def done(record):
            observed.append((record, len(memory_sink.records)))

        make_logger().info("hi", {"x": 1}, done)
        record, delivered_before_callback = observed[0]
        assert record["x"] == 1
        assert "done" not in record.serialized
        assert delivered_before_callback == 1

    def test_callback_with_level_argument(self, make_logger) -> None:
        """log(level, message, callback) calls back with the record"""
        observed = []
        make_logger().log("info", "hi", observed.append)
        assert observed[0].message == "hi"

    def test_callback_on_gated_record(self, make_logger) -> None:
        """A gated call calls back with None"""
        observed = []
        make_logger(level="error").debug("hi", observed.append)
        assert observed == [None]

    def test_add_remove_clear(self, make_logger, memory_sink) -> None:
        """Sinks can be added, removed and cleared"""
        logger = make_logger()
        extra = MemorySink()
        logger.add(extra)
        logger.info("both")
        logger.remove(memory_sink)
        logger.info("extra only")
        logger.clear()
        logger.info("nobody")
        assert [r.message for r in memory_sink.records] == ["both"]
        assert [r.message for r in extra.records] == ["both", "extra only"]
        assert logger.sinks == ()

    def test_default_console_sink_appended_last(self, memory_sink) -> None:
        """The default console sink follows user sinks"""
        logger = create_logger(sinks=[memory_sink])
        assert logger.sinks[0] is memory_sink
        assert isinstance(logger.sinks[-1], ConsoleSink)
        assert len(logger.sinks) == 2

    def test_default_console_sink_renders_serialized(self, capsys) -> None:
        """The default console sink prints serialized text"""
        logger = create_logger(service_name="svc")
        record = logger.info("hello", x=1)
        out = capsys.readouterr().out
        assert out == record.serialized + "\n"
        assert orjson.loads(out)["serviceName"] == "svc"

    def test_default_console_sink_can_be_disabled(self) -> None:
        """use_default_console_sink=False leaves no sinks"""
        assert create_logger(use_default_console_sink=False).sinks == ()

    def test_context_manager_closes_sinks(self, make_logger) -> None:
        """Leaving the with block closes the sinks"""
        closed = []

        class Closing(MemorySink):
            def close(self) -> None:
                closed.append(True)

        with make_logger(sinks=[Closing()]) as logger:
            assert isinstance(logger, Logger)
        assert closed == [True]


# ================================
# Non-JSON Values
# ================================


class Widget:
    def __str__(self) -> str:
        return "widget-7"


class TestNonJsonValues:
    """Values orjson cannot encode natively never break the logging call"""

    def test_big_int(self, make_logger, memory_sink, errors) -> None:
        """An integer beyond 64 bits is logged as text"""
        record = make_logger().info("hi", big=2**70)
        assert record is memory_sink.records[0]
        assert orjson.loads(record.serialized)["big"] == "1180591620717411303424"
        assert errors == []

    def test_surrogate_message(self, make_logger, memory_sink) -> None:
        """A message decoded with surrogateescape is still delivered"""
        record = make_logger().info("file \udcff.txt")
        assert record is memory_sink.records[0]
        assert orjson.loads(record.serialized)["message"] == "file \\udcff.txt"

    def test_datetime_meta(self, make_logger) -> None:
        """Datetimes in meta serialize natively"""
        at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = make_logger().info("hi", {"at": at})
        assert orjson.loads(record.serialized)["at"] == "2026-01-02T03:04:05Z"

    def test_custom_object_meta(self, make_logger) -> None:
        """Arbitrary objects fall back to str()"""
        record = make_logger().info("hi", widget=Widget())
        assert '"widget":"widget-7"' in record.serialized

    def test_cyclic_meta(self, make_logger, memory_sink) -> None:
        """A self-referencing meta value is cut, not recursed into"""
        loop: dict = {}
        loop["self"] = loop
        record = make_logger().info("hi", {"loop": loop})
        assert orjson.loads(record.serialized)["loop"] == {"self": "<cycle>"}
        assert len(memory_sink.records) == 1

    def test_nested_scalar_message_matches_flat(self, make_logger, memory_sink) -> None:
        """A scalar message promoted from a mapping is converted like a top-level one"""
        logger = make_logger()
        logger.info({"message": 5})
        logger.info({"message": {"message": 5}})
        first, second = memory_sink.records
        assert first["message"] == second["message"] == "5"
        assert first.serialized == second.serialized
