"""
Tests for hotforge observability module.
"""
import json
import logging

import pytest

from hotforge.errors import CompilerError, ManifestError, PluginBuildError, StageError
from hotforge.observability import BuildLogger, JSONLogger, configure_logging


def records(caplog, name):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == name]


# =============================================================================
# JSONLogger Tests
# =============================================================================


class TestJSONLogger:
    """Tests for JSONLogger."""

    def test_logs_valid_json(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.json")
        JSONLogger(name="test.json").info("Test message", plugin="a")

        (record,) = records(caplog, "test.json")
        assert record["message"] == "Test message"
        assert record["level"] == "info"
        assert record["plugin"] == "a"
        assert "timestamp" in record

    def test_includes_run_id_and_context(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.json")
        logger = JSONLogger(name="test.json", run_id="abc123", extra_context={"service": "hotforge"})

        logger.warning("Careful")

        (record,) = records(caplog, "test.json")
        assert record["run_id"] == "abc123"
        assert record["service"] == "hotforge"
        assert caplog.records[-1].levelno == logging.WARNING

    def test_non_json_values_stringified(self, caplog, tmp_path):
        caplog.set_level(logging.DEBUG, logger="test.json")
        JSONLogger(name="test.json").error("Failed", path=tmp_path)

        (record,) = records(caplog, "test.json")
        assert record["path"] == str(tmp_path)

    def test_with_context_creates_new_logger(self):
        logger = JSONLogger(name="test", run_id="abc123")
        new_logger = logger.with_context(trigger="plugin")

        assert new_logger is not logger
        assert new_logger.run_id == "abc123"
        assert new_logger.extra_context == {"trigger": "plugin"}
        assert logger.extra_context == {}

    def test_for_run(self):
        logger = JSONLogger(name="test", extra_context={"a": 1})
        bound = logger.for_run("r1")
        assert bound.run_id == "r1"
        assert bound.extra_context == {"a": 1}
        assert logger.run_id is None

    def test_correlation_fields_on_every_line(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.json")
        logger = JSONLogger(name="test.json").for_run("r1", trigger="plugin").for_stage("deploy_resources")

        logger.debug("Copied files", count=3)

        (record,) = records(caplog, "test.json")
        assert record == {
            "timestamp": record["timestamp"],
            "level": "debug",
            "message": "Copied files",
            "run_id": "r1",
            "trigger": "plugin",
            "stage": "deploy_resources",
            "count": 3,
        }

    def test_for_run_resets_stage_and_keeps_trigger(self):
        logger = JSONLogger(name="test", trigger="core").for_run("r1").for_stage("clean")
        rebound = logger.for_run("r2")
        assert rebound.correlation == {"run_id": "r2", "trigger": "core"}
        assert logger.correlation == {"run_id": "r1", "trigger": "core", "stage": "clean"}

    def test_call_context_overrides_binding(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.json")
        JSONLogger(name="test.json").for_stage("clean").info("Stage started", stage="deploy_resources")

        (record,) = records(caplog, "test.json")
        assert record["stage"] == "deploy_resources"

    def test_detached(self):
        logger = JSONLogger(name="test", extra_context={"a": 1}).for_run("r1", trigger="full").for_stage("clean")
        detached = logger.detached()
        assert detached.correlation == {}
        assert detached.extra_context == {"a": 1}
        assert detached.name == "test"

    def test_disabled_level_not_serialized(self, caplog):
        caplog.set_level(logging.WARNING, logger="test.json")

        class Unserializable:
            def __str__(self):
                raise AssertionError("serialized a filtered line")

        JSONLogger(name="test.json").debug("Noisy", value=Unserializable())

        assert records(caplog, "test.json") == []


# =============================================================================
# BuildLogger Tests
# =============================================================================


class TestBuildLogger:
    """Tests for BuildLogger."""

    def test_binds_run_and_trigger(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.build")
        log = BuildLogger(run_id="r1", trigger="core", inner=JSONLogger(name="test.build"))

        log.stage_started("build_core_plugins")

        (record,) = records(caplog, "test.build")
        assert record == {
            "timestamp": record["timestamp"],
            "level": "info",
            "message": "Stage started",
            "trigger": "core",
            "stage": "build_core_plugins",
            "run_id": "r1",
        }

    def test_pipeline_events(self, caplog):
        caplog.set_level(logging.DEBUG, logger="test.build")
        log = BuildLogger(run_id="r1", inner=JSONLogger(name="test.build"))

        log.pipeline_started(["clean", "deploy_resources"])
        log.stage_completed("clean", duration_ms=1.23456)
        log.stage_failed("deploy_resources", OSError("disk full"), duration_ms=2.0)
        log.pipeline_completed(success=False, duration_ms=3.0)

        started, completed, failed, finished = records(caplog, "test.build")
        assert started["stage_count"] == 2
        assert completed["duration_ms"] == 1.23
        assert failed["error_type"] == "OSError"
        assert failed["error_message"] == "disk full"
        assert finished["level"] == "error"
        assert finished["success"] is False

    def test_configure_logging(self):
        configure_logging("debug")
        configure_logging("not-a-level")


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    def test_stage_error_carries_cause(self):
        cause = ValueError("boom")
        error = StageError("clean", cause)
        assert error.stage_name == "clean"
        assert error.cause is cause
        assert str(error) == "Stage 'clean' failed: boom"

    def test_plugin_build_error_names_plugin(self):
        assert str(PluginBuildError("a", "Compilation failed")) == "[a] Compilation failed"
        assert isinstance(ManifestError("a", "bad"), PluginBuildError)

    @pytest.mark.parametrize(
        "returncode,expected",
        [(None, "main.ts: not found"), (2, "main.ts: not found (exit=2)")],
    )
    def test_compiler_error(self, returncode, expected):
        assert str(CompilerError("main.ts", "not found", returncode=returncode)) == expected
