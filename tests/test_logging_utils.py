import json

import pytest

from beanbase.utils.logging_utils import LoggerManager, get_log_context, log_context


def _flush(logger):
    for handler in logger.handlers:
        handler.flush()


@pytest.fixture
def manager(tmp_path):
    manager = LoggerManager(str(tmp_path), console=False)
    yield manager
    manager.shutdown()


class TestLogContext:
    def test_fields_nest_and_reset(self):
        with log_context(bean_type="user", action=None):
            with log_context(action="save"):
                assert get_log_context() == {"bean_type": "user", "action": "save"}
            assert get_log_context() == {"bean_type": "user"}
        assert get_log_context() == {}


class TestLoggerManager:
    """Category loggers write to their own files."""

    def test_text_records_carry_context(self, manager, tmp_path):
        logger = manager.get_logger("crud")
        with log_context(bean_type="order", action="store"):
            logger.info("stored order#1")
        _flush(logger)

        text = (tmp_path / "crud.log").read_text(encoding="utf-8")
        assert "stored order#1" in text
        assert "action=store bean_type=order" in text
        assert logger.propagate is False
        assert manager.get_logger("CRUD") is logger

    def test_unknown_category_gets_its_own_file(self, manager, tmp_path):
        logger = manager.get_logger("imports")
        logger.info("imported 3 beans")
        _flush(logger)
        assert "imported 3 beans" in (tmp_path / "imports.log").read_text(encoding="utf-8")

    def test_json_format(self, tmp_path):
        manager = LoggerManager(str(tmp_path), console=False, json_format=True)
        try:
            logger = manager.get_logger("relation")
            with log_context(bean_type="invoice"):
                logger.warning("late", extra={"bean_id": 7})
            _flush(logger)
            record = json.loads((tmp_path / "relation.log").read_text(encoding="utf-8").splitlines()[-1])
        finally:
            manager.shutdown()

        assert record["level"] == "WARNING"
        assert record["logger"] == "beanbase.relation"
        assert record["message"] == "late"
        assert record["bean_id"] == 7
        assert record["context"] == {"bean_type": "invoice"}

    def test_category_level(self, tmp_path):
        manager = LoggerManager(str(tmp_path), console=False, category_levels={"Validation": 40})
        try:
            logger = manager.get_logger("validation")
            logger.info("hidden")
            logger.error("shown")
            _flush(logger)
            text = (tmp_path / "validation.log").read_text(encoding="utf-8")
        finally:
            manager.shutdown()

        assert "hidden" not in text
        assert "shown" in text

    def test_shutdown_detaches_handlers(self, tmp_path):
        manager = LoggerManager(str(tmp_path), console=False)
        logger = manager.get_logger("audit")
        count = len(logger.handlers)
        manager.shutdown()
        assert len(logger.handlers) == count - 1
