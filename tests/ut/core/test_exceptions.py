"""异常体系与错误分类器测试"""

import logging
import ssl

import pytest

from modhub.core.exceptions import (
    PLATFORM_UNSUPPORTED_MESSAGE,
    ConflictError,
    ModHubError,
    NetworkError,
    NotFoundError,
    PackageIOError,
    ParseError,
    is_platform_capability_error,
    report_error,
    status_text,
)


class TestErrorTypes:
    def test_codes(self) -> None:
        assert NetworkError(404).code == "NETWORK_ERROR"
        assert ParseError("x").code == "PARSE_ERROR"
        assert ConflictError("x").code == "CONFLICT"
        assert PackageIOError("x").code == "IO_ERROR"
        assert isinstance(NotFoundError("x"), ModHubError)

    def test_network_error_message(self) -> None:
        e = NetworkError(404, "https://api.test/repos/a/b")
        assert e.status == 404
        assert str(e) == "连接错误: 404 Not found"

    def test_status_text_unknown_code(self) -> None:
        assert status_text(799) == "799"

    def test_not_found_with_suggestion(self) -> None:
        e = NotFoundError.for_name("包", "ExampelMod", ["ExampleMod", "Other"])
        assert e.suggestion == "ExampleMod"
        assert "你是否要找 'ExampleMod'" in str(e)

    def test_not_found_without_suggestion_beyond_threshold(self) -> None:
        e = NotFoundError.for_name("包", "zzzzzzzz", ["ExampleMod"])
        assert e.suggestion is None
        assert "你是否要找" not in str(e)


class TestReportError:
    def test_tls_error_in_cause_chain(self, caplog: pytest.LogCaptureFixture) -> None:
        try:
            try:
                raise ssl.SSLError("handshake failure")
            except ssl.SSLError as inner:
                raise ConnectionError("请求失败") from inner
        except ConnectionError as e:
            exc = e

        assert is_platform_capability_error(exc)
        with caplog.at_level(logging.ERROR):
            message = report_error(exc, logging.getLogger("test"))
        assert message == PLATFORM_UNSUPPORTED_MESSAGE
        assert all(r.exc_info is None for r in caplog.records)

    def test_trust_anchor_marker(self) -> None:
        assert is_platform_capability_error(RuntimeError("trust anchor for certification path not found"))

    def test_generic_error_logged_with_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        exc = ParseError("目录 JSON 格式错误")
        with caplog.at_level(logging.ERROR):
            message = report_error(exc, logging.getLogger("test"))
        assert message == "目录 JSON 格式错误"
        assert caplog.records[-1].exc_info is not None

    def test_network_error_has_no_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            message = report_error(NetworkError(500, "https://x.test"), logging.getLogger("test"))
        assert message.startswith("连接错误: 500")
        assert caplog.records[-1].exc_info is None
