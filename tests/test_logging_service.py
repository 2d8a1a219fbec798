import json
import logging

from shared_lib.config import SystemConfig
from server.web.app.services.logging_service import (
    JSONFormatter,
    LoggingService,
    ModerationLoggerAdapter,
    request_id_var,
)


def make_record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_extras():
    token = request_id_var.set("req-123")
    try:
        line = JSONFormatter().format(make_record("approved", action="approve_content"))
    finally:
        request_id_var.reset(token)

    data = json.loads(line)
    assert data["message"] == "approved"
    assert data["level"] == "INFO"
    assert data["request_id"] == "req-123"
    assert data["extra"] == {"action": "approve_content"}


def test_build_config_without_log_dir():
    config = LoggingService().build_config(SystemConfig())

    assert set(config["handlers"]) == {"console"}
    assert config["handlers"]["console"]["formatter"] == "json"


def test_build_config_with_log_dir(tmp_path):
    settings = SystemConfig.from_dict({"logging": {"log_dir": str(tmp_path / "logs")}})

    config = LoggingService().build_config(settings)

    assert set(config["handlers"]) == {"console", "file_all", "file_error"}
    assert (tmp_path / "logs").is_dir()


def test_moderation_event_carries_fields(caplog):
    adapter = ModerationLoggerAdapter(logging.getLogger("moderation_platform.test"))

    with caplog.at_level(logging.INFO, logger="moderation_platform.test"):
        adapter.log_moderation_event(logging.INFO, "hide_content", "job", "j1", "mod-1", reason="spam")

    record = caplog.records[-1]
    assert record.getMessage() == "hide_content job:j1"
    assert record.event_type == "moderation"
    assert record.moderator_id == "mod-1"
    assert record.reason == "spam"
