import json
import logging
from unittest.mock import patch

from jenkins_crawler.core.logging import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        name="jenkins_crawler.tasks.scheduler",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="build %s finished",
        args=("7",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_fields():
    data = json.loads(JSONFormatter().format(_record(build_id="7", status="SUCCESS")))

    assert data["message"] == "build 7 finished"
    assert data["level"] == "INFO"
    assert data["logger"] == "jenkins_crawler.tasks.scheduler"
    assert data["build_id"] == "7"
    assert data["status"] == "SUCCESS"
    assert "url" not in data


def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    with patch.object(root, "handlers", []):
        setup_logging(log_format="json", level="debug")
        setup_logging(log_format="text")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
