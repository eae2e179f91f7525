"""Tests for logging module."""
from __future__ import annotations

import logging
from pathlib import Path

from loguru import logger

from gshl_rank.aggregation.config import PLAYER_DAY_TO_WEEK
from gshl_rank.aggregation.rollup import aggregate
from gshl_rank.logging import (
    FAIL,
    QUIET_LOGGERS,
    SUCCESS,
    WARN,
    get_logger,
    is_rollup_record,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_creates_directory(self, tmp_path: Path) -> None:
        """setup_logging should create log directory if it doesn't exist."""
        log_dir = tmp_path / "nested" / "logs"
        setup_logging(log_dir=str(log_dir))

        assert log_dir.exists()

    def test_setup_logging_all_parameters(self, tmp_path: Path) -> None:
        """setup_logging should accept all custom parameters."""
        log_dir = tmp_path / "logs"
        setup_logging(
            level="WARNING",
            log_dir=str(log_dir),
            rotation="500 MB",
            retention="14 days",
            serialize=False,
        )

        assert log_dir.exists()

    def test_stdlib_logging_is_intercepted(self, tmp_path: Path) -> None:
        """Records from the stdlib logging module should reach loguru sinks."""
        setup_logging(level="DEBUG", log_dir=str(tmp_path / "logs"))
        messages: list[str] = []
        sink_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG")
        try:
            logging.getLogger("gshl_rank.aggregation.rollup").warning(
                "skipped %d records", 3
            )
        finally:
            logger.remove(sink_id)

        assert any("skipped 3 records" in m for m in messages)

    def test_quiets_sqlalchemy(self, tmp_path: Path) -> None:
        """SQLAlchemy engine and pool loggers should be held at WARNING."""
        setup_logging(level="DEBUG", log_dir=str(tmp_path / "logs"))

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestRollupLog:
    """Tests for the rollup log sink."""

    def test_filter_by_module(self) -> None:
        """Only aggregation modules should pass the rollup filter."""
        assert is_rollup_record({"name": "gshl_rank.aggregation.pipeline"})
        assert not is_rollup_record({"name": "gshl_rank.ranking.trainer"})
        assert not is_rollup_record({"name": None})

    def test_rollup_messages_written(self, tmp_path: Path) -> None:
        """Aggregation warnings should land in the rollup log."""
        log_dir = tmp_path / "logs"
        setup_logging(level="INFO", log_dir=str(log_dir))

        aggregate([{"playerId": "", "weekId": "1", "gshlTeamId": "t1"}], PLAYER_DAY_TO_WEEK)
        logger.complete()

        [rollup_file] = log_dir.glob("rollups_*.log")
        assert "skipped 1 records missing grouping fields" in rollup_file.read_text()

    def test_rollup_log_optional(self, tmp_path: Path) -> None:
        """rollup_log=False should not create the rollup file."""
        log_dir = tmp_path / "logs"
        setup_logging(log_dir=str(log_dir), rollup_log=False)
        logger.complete()

        assert list(log_dir.glob("rollups_*.log")) == []


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_binds_name(self) -> None:
        """get_logger should bind the module name."""
        messages: list[dict] = []
        sink_id = logger.add(lambda message: messages.append(message.record["extra"]))
        try:
            get_logger("gshl_rank.ranking.trainer").info("Trained {} model keys", 12)
        finally:
            logger.remove(sink_id)

        assert messages[-1]["name"] == "gshl_rank.ranking.trainer"


class TestLoggerExports:
    """Tests for module exports."""

    def test_logger_is_exported(self) -> None:
        """Base logger should be exported."""
        from gshl_rank.logging import logger as exported_logger

        assert exported_logger is logger

    def test_status_tags(self) -> None:
        """Status tags should carry their labels."""
        assert "[SUCCESS]" in SUCCESS
        assert "[FAIL]" in FAIL
        assert "[WARN]" in WARN
