"""Tests for the structured logging system (payrun_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payrun_kernel.exceptions import OverpaymentError, SlotNotFoundError
from payrun_kernel.logging_config import (
    ROOT_LOGGER,
    LogContext,
    PayrunFormatter,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _restore_kernel_logger():
    """Put the suite's handlers back after a test reconfigures logging."""
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    return logging.StreamHandler(stream), stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestPayrunFormatter:
    """Tests for JSON log output format."""

    def test_envelope(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("services.board").info("auto_fill_completed")

        (record,) = _parse_all_logs(stream)
        assert record["level"] == "INFO"
        assert record["event"] == "auto_fill_completed"
        assert record["component"] == "services.board"
        assert "time" in record
        assert "board" not in record

    def test_money_and_ids_serialized_as_strings(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        slot_id = uuid4()
        get_logger("test").info(
            "slot_settled", extra={"amount": Decimal("12.50"), "slot": slot_id}
        )

        (record,) = _parse_all_logs(stream)
        assert record["amount"] == "12.50"
        assert record["slot"] == str(slot_id)

    def test_board_fields_nested(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(operation="approve_board", slot_id="s1"):
            get_logger("test").info("board_approved")

        (record,) = _parse_all_logs(stream)
        assert record["board"] == {"operation": "approve_board", "slot_id": "s1"}

    def test_kernel_error_rendered_without_traceback(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise OverpaymentError("w1", "30.00", "20.00")
        except OverpaymentError:
            get_logger("test").error("settle_rejected", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["error"]["type"] == "OverpaymentError"
        assert record["error"]["code"] == "OVERPAYMENT"
        assert record["error"]["amount"] == "30.00"
        assert record["error"]["remaining"] == "20.00"
        assert "traceback" not in record

    def test_position_kept_on_slot_error(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise SlotNotFoundError(position=3)
        except SlotNotFoundError:
            get_logger("test").warning("lookup_failed", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["error"]["position"] == 3

    def test_unexpected_error_carries_traceback(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("test").error("auto_fill_failed", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["error"] == {"type": "RuntimeError", "message": "boom"}
        assert "RuntimeError: boom" in record["traceback"]

    def test_extra_cannot_overwrite_envelope(self):
        handler = logging.StreamHandler(StringIO())
        handler.setFormatter(PayrunFormatter())
        record = logging.LogRecord("payrun_kernel.x", logging.INFO, "", 0, "real", (), None)
        record.event = "fake"

        assert json.loads(handler.format(record))["event"] == "real"


class TestLogContext:
    def test_bind_stacks_and_restores(self):
        with LogContext.bind(operation="outer"):
            with LogContext.bind(slot_id="s1"):
                assert LogContext.current() == {"operation": "outer", "slot_id": "s1"}
            assert LogContext.current() == {"operation": "outer"}
        assert LogContext.current() == {}

    def test_none_values_ignored(self):
        with LogContext.bind(operation="settle_slot", slot_id=None):
            assert LogContext.current() == {"operation": "settle_slot"}

    def test_clear(self):
        with LogContext.bind(work_item_id="w1"):
            LogContext.clear()
            assert LogContext.current() == {}


class TestConfigureLogging:
    def test_reconfigure_replaces_handler(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert logging.getLogger(ROOT_LOGGER).handlers == [handler]

    def test_foreign_handlers_kept(self):
        foreign = logging.NullHandler()
        logging.getLogger(ROOT_LOGGER).addHandler(foreign)
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert foreign in logging.getLogger(ROOT_LOGGER).handlers

    def test_level_applied(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")
        logger.info("quiet")
        logger.warning("loud")

        assert [r["event"] for r in _parse_all_logs(stream)] == ["loud"]

    def test_coordinator_operations_carry_operation_field(self, coordinator):
        handler, stream = _make_handler()
        configure_logging(level=logging.DEBUG, handler=handler)

        coordinator.create_person("Ana", "Dev")

        records = [r for r in _parse_all_logs(stream) if r["event"] == "person_created"]
        assert len(records) == 1
        assert records[0]["board"]["operation"] == "create_person"
