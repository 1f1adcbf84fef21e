import json
import logging

from stackgen.lib.logging_config import StackgenJsonFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="stackgen.services.logout_service",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Skipping unreachable service",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_severity_stack_and_cascade_fields() -> None:
    formatter = StackgenJsonFormatter("%(timestamp)s %(severity)s %(name)s %(message)s", stack="local")

    line = json.loads(formatter.format(_record(event="logout_service_skipped", service_id="dozzle")))

    assert line["severity"] == "WARNING"
    assert line["stack"] == "local"
    assert line["event"] == "logout_service_skipped"
    assert line["service_id"] == "dozzle"
    assert line["message"] == "Skipping unreachable service"
    assert line["timestamp"]


def test_formatter_without_stack_or_extra() -> None:
    formatter = StackgenJsonFormatter("%(timestamp)s %(severity)s %(name)s %(message)s")

    line = json.loads(formatter.format(_record()))

    assert "stack" not in line
    assert "service_id" not in line


def test_setup_logging_installs_single_json_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(debug=True, stack="local")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StackgenJsonFormatter)
        assert logging.getLogger("uvicorn").handlers == root.handlers
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
