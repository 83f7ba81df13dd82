"""目录缓存 - 插件目录 / 模组目录各一份，按 TTL 刷新

get() 命中新鲜缓存时直接回调，不发请求；
过期、为空或强制同步时委托 RegistryClient 拉取。
同一目录刷新进行中时，后到的调用只登记回调，共享同一次请求。
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Callable

from modhub.core.exceptions import report_error
from modhub.core.models import CatalogEntry, ListingKind
from modhub.services.listing.client import ListingCallback, RegistryClient
from modhub.utils.net import FailureCallback

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600


@dataclass
class _CatalogSlot:
    entries: list[CatalogEntry] | None = None
    synced_at: float = 0.0
    in_flight: bool = False
    waiters: list[tuple[ListingCallback, FailureCallback | None]] = field(default_factory=list)


class ListingCache:
    """两份目录的 TTL 缓存（只在应用线程上访问）"""

    def __init__(
        self,
        client: RegistryClient,
        urls: Mapping[ListingKind, str],
        *,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._urls = dict(urls)
        self.ttl = ttl
        self._clock = clock
        self._slots = {kind: _CatalogSlot() for kind in ListingKind}

    def cached(self, kind: ListingKind) -> list[CatalogEntry] | None:
        """当前缓存内容（不触发刷新）"""
        entries = self._slots[kind].entries
        return list(entries) if entries is not None else None

    def is_fresh(self, kind: ListingKind) -> bool:
        slot = self._slots[kind]
        return slot.entries is not None and self._clock() - slot.synced_at < self.ttl

    def get(
        self,
        kind: ListingKind,
        on_ready: ListingCallback,
        *,
        force_sync: bool = False,
        on_error: FailureCallback | None = None,
    ) -> None:
        """取目录；on_ready 收到按 lastUpdated 倒序的条目

        失败时记录日志，并在提供了 on_error 时回调它；缓存保持原状。
        """
        slot = self._slots[kind]
        if force_sync:
            # 强制同步先清空，保证重新拉取
            slot.entries = None
            slot.synced_at = 0.0
        elif self.is_fresh(kind):
            on_ready(list(slot.entries or []))
            return

        slot.waiters.append((on_ready, on_error))
        if slot.in_flight:
            logger.debug("%s 目录刷新进行中，合并请求", kind.value)
            return

        slot.in_flight = True
        self._client.fetch(
            self._urls[kind],
            kind,
            partial(self._on_fetched, kind),
            partial(self._on_failed, kind),
        )

    def _on_fetched(self, kind: ListingKind, entries: list[CatalogEntry]) -> None:
        slot = self._slots[kind]
        slot.entries = entries
        slot.synced_at = self._clock()
        slot.in_flight = False
        waiters, slot.waiters = slot.waiters, []
        for on_ready, _ in waiters:
            on_ready(list(entries))

    def _on_failed(self, kind: ListingKind, exc: BaseException) -> None:
        slot = self._slots[kind]
        slot.in_flight = False
        waiters, slot.waiters = slot.waiters, []
        report_error(exc, logger)
        for _, on_error in waiters:
            if on_error is not None:
                on_error(exc)
