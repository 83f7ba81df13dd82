"""日志配置测试"""

import json
import logging

from modhub.utils.logger import (
    JSONFormatter,
    reset_logging,
    setup_logging,
    setup_logging_from_env,
)


class TestLogging:
    def teardown_method(self) -> None:
        reset_logging()

    def test_setup_replaces_handlers(self) -> None:
        setup_logging("DEBUG")
        setup_logging("WARNING")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_json_output(self) -> None:
        setup_logging("INFO", json_output=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_json_formatter_fields(self) -> None:
        record = logging.LogRecord("modhub.x", logging.INFO, __file__, 10, "已加载 %d 个包", (3,), None)
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "已加载 3 个包"
        assert data["level"] == "INFO"
        assert data["logger"] == "modhub.x"
        assert "repository" not in data

    def test_json_formatter_context_fields(self) -> None:
        record = logging.LogRecord("modhub.x", logging.INFO, __file__, 10, "开始导入", (), None)
        record.repository = "owner/repo"
        record.package = None
        data = json.loads(JSONFormatter().format(record))
        assert data["repository"] == "owner/repo"
        assert "package" not in data

    def test_setup_from_env(self) -> None:
        setup_logging_from_env({"MODHUB_LOG_LEVEL": "debug", "MODHUB_LOG_JSON": "1"})
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_setup_from_env_defaults(self) -> None:
        setup_logging_from_env({})
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
