"""远程目录客户端 - 一次 GET 拉取整份目录 JSON

结果按 lastUpdated 倒序排列（最新在前），分页展示依赖这一顺序。
非 2xx 状态映射为 NetworkError，不重试；解析失败映射为 ParseError，
两者都走失败续延，调用方已有的缓存保持不变。
"""

from __future__ import annotations

import json
import logging
from typing import Callable

from modhub.core.exceptions import NetworkError, ParseError
from modhub.core.models import CatalogEntry, ListingKind
from modhub.utils.net import FailureCallback, HttpResponse, HttpTransport

logger = logging.getLogger(__name__)

ListingCallback = Callable[[list[CatalogEntry]], None]


class RegistryClient:
    """目录拉取与反序列化"""

    def __init__(self, http: HttpTransport) -> None:
        self._http = http

    def fetch(
        self,
        url: str,
        kind: ListingKind,
        on_success: ListingCallback,
        on_failure: FailureCallback,
    ) -> None:
        def on_response(response: HttpResponse) -> None:
            if not response.ok:
                on_failure(NetworkError(response.status, url))
                return
            try:
                entries = self.parse_listing(response.body, kind)
            except ParseError as e:
                logger.warning(
                    "%s 目录解析失败，保留现有缓存: %s", kind.value, e, extra={"kind": kind.value},
                )
                on_failure(e)
                return
            logger.info("%s 目录已拉取: %d 条", kind.value, len(entries), extra={"kind": kind.value})
            on_success(entries)

        logger.debug("拉取 %s 目录: %s", kind.value, url)
        self._http.get_async(url, on_response, on_failure)

    @staticmethod
    def parse_listing(body: bytes | str, kind: ListingKind) -> list[CatalogEntry]:
        """目录 JSON -> 按 lastUpdated 倒序的条目列表

        Raises:
            ParseError: 不是 JSON 数组或任一条目无效
        """
        try:
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"目录 JSON 格式错误: {e}") from e
        if not isinstance(data, list):
            raise ParseError(f"目录必须是 JSON 数组，实际为 {type(data).__name__}")

        entries = [CatalogEntry.from_dict(item, kind) for item in data]
        entries.sort(key=lambda e: e.last_updated, reverse=True)
        return entries
