"""网络工具 - URL 校验与 HTTP GET 客户端

HttpClient 只做一件事：GET 并把状态码、响应头、响应体原样交给调用方。
非 2xx 状态不抛异常（由调用方映射为 NetworkError）；
只有连接层失败（DNS、TLS、超时等）才走失败续延。
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol
from urllib.parse import urlparse

from modhub.core.exceptions import ValidationError
from modhub.utils.tasks import Dispatcher, ImmediateDispatcher

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

USER_AGENT = "modhub"


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


@dataclass
class HttpResponse:
    """一次 GET 的结果（与 urllib 解耦）"""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """大小写不敏感地读取响应头"""
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return None

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


ResponseCallback = Callable[[HttpResponse], None]
FailureCallback = Callable[[BaseException], None]


class HttpTransport(Protocol):
    """异步 GET 协议 - 导入管线与目录客户端只依赖它

    测试时注入按 URL 路由的假实现即可，无需 patch urllib。
    """

    def get_async(
        self,
        url: str,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
        *,
        follow_redirects: bool = True,
    ) -> None:
        ...


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """不跟随重定向，让 3xx 连同 Location 头原样返回"""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[no-untyped-def]
        return None


class HttpClient:
    """基于 urllib 的 GET 客户端

    get() 阻塞执行；get_async() 在 I/O 线程池执行，
    完成后把续延投递到 dispatcher（应用线程）。
    io_workers=0 时 get_async 在调用线程内同步完成。
    """

    def __init__(
        self,
        dispatcher: Dispatcher | None = None,
        *,
        io_workers: int = 4,
        timeout: float | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._dispatcher: Dispatcher = dispatcher or ImmediateDispatcher()
        self._pool = (
            ThreadPoolExecutor(max_workers=io_workers, thread_name_prefix="modhub-io")
            if io_workers > 0 else None
        )
        self.timeout = timeout
        self.user_agent = user_agent
        self._opener = urllib.request.build_opener()
        self._no_redirect_opener = urllib.request.build_opener(_NoRedirect())

    def get(self, url: str, *, follow_redirects: bool = True) -> HttpResponse:
        """执行一次 GET

        Raises:
            ValidationError: 非 http/https URL
            ConnectionError: 连接层失败（原始异常保留在 __cause__）
        """
        validate_url_scheme(url, context="http get")
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        opener = self._opener if follow_redirects else self._no_redirect_opener
        logger.debug("GET %s", url)
        try:
            with opener.open(req, timeout=self.timeout) as resp:  # nosec B310
                return HttpResponse(
                    status=resp.status,
                    body=resp.read(),
                    headers=dict(resp.headers.items()),
                    url=url,
                )
        except urllib.error.HTTPError as e:
            try:
                body = e.read()
            except OSError:
                body = b""
            finally:
                e.close()
            headers = dict(e.headers.items()) if e.headers is not None else {}
            return HttpResponse(status=e.code, body=body, headers=headers, url=url)
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            raise ConnectionError(f"请求失败: {url} - {reason}") from e

    def get_async(
        self,
        url: str,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
        *,
        follow_redirects: bool = True,
    ) -> None:
        if self._pool is None:
            self._call(url, follow_redirects, on_response, on_failure)
        else:
            self._pool.submit(self._call, url, follow_redirects, on_response, on_failure)

    def _call(
        self,
        url: str,
        follow_redirects: bool,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
    ) -> None:
        try:
            response = self.get(url, follow_redirects=follow_redirects)
        except Exception as e:
            self._dispatcher.post(on_failure, e)
            return
        self._dispatcher.post(on_response, response)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False)
