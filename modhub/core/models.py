"""远程目录数据模型

CatalogEntry 对应插件目录 / 模组目录 JSON 数组中的一条记录，
反序列化后不可变，以 repository 为身份标识。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from modhub.core.exceptions import ParseError


class ListingKind(str, Enum):
    """目录种类"""

    PLUGIN = "plugin"
    MOD = "mod"


def parse_timestamp(text: str) -> datetime:
    """解析 ISO-8601 时间戳，无时区信息时按 UTC 处理

    Raises:
        ParseError: 格式无效
    """
    if not isinstance(text, str) or not text:
        raise ParseError(f"无效的时间戳: {text!r}")
    value = text.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ParseError(f"无效的时间戳: {text!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CatalogEntry:
    """目录中的一条可安装包记录"""

    repository: str
    display_name: str
    author: str
    description: str
    last_updated: datetime
    star_count: int = 0
    has_compiled_language: bool = False
    has_scripts: bool = False
    min_host_version: str = ""
    kind: ListingKind = ListingKind.PLUGIN

    @classmethod
    def from_dict(cls, data: Any, kind: ListingKind = ListingKind.PLUGIN) -> CatalogEntry:
        """从目录 JSON 对象构造

        字段: repo, name, author, description, lastUpdated, hasJava, stars,
        以及模组目录额外的 minGameVersion, hasScripts。

        Raises:
            ParseError: 不是对象、缺少 repo 或 lastUpdated 无效
        """
        if not isinstance(data, dict):
            raise ParseError(f"目录条目必须是对象，实际为 {type(data).__name__}")
        repo = data.get("repo")
        if not isinstance(repo, str) or not repo:
            raise ParseError(f"目录条目缺少 repo 字段: {data!r}")
        try:
            stars = int(data.get("stars") or 0)
        except (TypeError, ValueError) as e:
            raise ParseError(f"目录条目 {repo} 的 stars 无效: {data.get('stars')!r}") from e
        return cls(
            repository=repo,
            display_name=str(data.get("name") or repo),
            author=str(data.get("author") or ""),
            description=str(data.get("description") or ""),
            last_updated=parse_timestamp(data.get("lastUpdated", "")),
            star_count=stars,
            has_compiled_language=bool(data.get("hasJava", False)),
            has_scripts=bool(data.get("hasScripts", False)),
            min_host_version=str(data.get("minGameVersion") or ""),
            kind=kind,
        )
