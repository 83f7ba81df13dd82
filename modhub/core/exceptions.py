"""统一异常体系

所有业务异常继承 ModHubError。CLI 层据 code 输出友好提示，
网络续延链通过 report_error() 统一分类、记录日志。
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Iterable, Iterator
from http import HTTPStatus

# TLS / 证书链失败的特征文本，命中时只提示平台能力不足
_TLS_MARKERS = ("trust anchor", "SSL", "certificate", "protocol")

PLATFORM_UNSUPPORTED_MESSAGE = "当前设备/环境不支持此功能（TLS 握手失败）"


class ModHubError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ModHubError):
    """配置缺失或内容无效（含发布中找不到可安装产物）"""

    code = "CONFIG_ERROR"


class ValidationError(ModHubError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class NetworkError(ModHubError):
    """HTTP 非成功状态码，不重试"""

    code = "NETWORK_ERROR"

    def __init__(self, status: int, url: str = "") -> None:
        self.status = status
        self.url = url
        super().__init__(f"连接错误: {status_text(status)}")


class ParseError(ModHubError):
    """目录或清单 JSON 格式错误"""

    code = "PARSE_ERROR"


class NotFoundError(ModHubError):
    """目录条目、已安装包或发布产物不存在"""

    code = "NOT_FOUND"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        if suggestion:
            message = f"{message} 你是否要找 '{suggestion}'?"
        super().__init__(message)
        self.suggestion = suggestion

    @classmethod
    def for_name(cls, kind: str, name: str, candidates: Iterable[str]) -> NotFoundError:
        """构造带最近匹配建议的异常（编辑距离 ≤ 3）"""
        from modhub.utils.text import closest_match

        return cls(f"未找到名为 '{name}' 的{kind}。", closest_match(name, candidates))


class ConflictError(ModHubError):
    """同名包已存在且不允许覆盖"""

    code = "CONFLICT"


class UnsupportedEnvironmentError(ModHubError):
    """当前平台禁止加载入口代码"""

    code = "UNSUPPORTED_ENVIRONMENT"


class PackageIOError(ModHubError):
    """本地文件复制 / 删除失败"""

    code = "IO_ERROR"


def status_text(status: int) -> str:
    """状态码 -> 'Not found' 风格的可读文本"""
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        return str(status)
    return f"{status} {phrase.capitalize()}"


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """沿 __cause__ / __context__ 遍历异常链（防环）"""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_platform_capability_error(exc: BaseException) -> bool:
    """异常链中是否存在 TLS / 证书失败"""
    for e in iter_causes(exc):
        if isinstance(e, ssl.SSLError):
            return True
        message = str(e)
        if message and any(marker in message for marker in _TLS_MARKERS):
            return True
    return False


def report_error(exc: BaseException, logger: logging.Logger) -> str:
    """错误分类器：记录日志并返回面向用户的消息

    TLS 类错误只输出平台能力提示，不打印原始异常；
    其余错误连同完整因果链一起记录。
    """
    if is_platform_capability_error(exc):
        logger.error(PLATFORM_UNSUPPORTED_MESSAGE)
        return PLATFORM_UNSUPPORTED_MESSAGE

    message = str(exc) or type(exc).__name__
    if isinstance(exc, NetworkError):
        # 状态码错误没有有意义的堆栈
        logger.error("%s (%s)", message, exc.url or "-")
    else:
        logger.error("%s", message, exc_info=(type(exc), exc, exc.__traceback__))
    return message
