"""目录检索 - 按字段过滤条目、按名称精确定位条目"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from modhub.core.exceptions import NotFoundError, ValidationError
from modhub.core.models import CatalogEntry
from modhub.utils.text import closest_match, strip_colors

logger = logging.getLogger(__name__)

FIELDS = ("name", "repo", "description", "desc", "author", "stars")

# 双字符运算符必须先于单字符匹配
_STAR_OPERATORS = (
    (">=", lambda a, b: a >= b),
    ("<=", lambda a, b: a <= b),
    (">", lambda a, b: a > b),
    ("<", lambda a, b: a < b),
    ("=", lambda a, b: a == b),
)


def _parse_stars(value: str) -> tuple[str, int]:
    text = value.strip()
    op = "="
    for symbol, _ in _STAR_OPERATORS:
        if text.startswith(symbol):
            op, text = symbol, text[len(symbol):]
            break
    try:
        return op, int(text.strip())
    except ValueError as e:
        raise ValidationError(f"stars 条件必须是数字，可带 > < >= <= = 前缀: {value!r}") from e


@dataclass(frozen=True)
class SearchCriteria:
    """单字段检索条件

    name / repo / description(desc) 为忽略大小写的包含匹配，
    author 为忽略大小写的相等匹配，stars 支持比较运算符。
    """

    field: str
    value: str

    def __post_init__(self) -> None:
        if self.field not in FIELDS:
            hint = closest_match(self.field, FIELDS)
            raise ValidationError(
                f"未知的检索字段: {self.field}" + (f"，你是否要找 '{hint}'?" if hint else ""),
                details=list(FIELDS),
            )
        if self.field == "stars":
            _parse_stars(self.value)

    def matches(self, entry: CatalogEntry) -> bool:
        needle = self.value.lower()
        if self.field == "name":
            return needle in strip_colors(entry.display_name).lower()
        if self.field == "repo":
            return needle in entry.repository.lower()
        if self.field in ("description", "desc"):
            return needle in entry.description.lower()
        if self.field == "author":
            return entry.author.lower() == needle
        op, bound = _parse_stars(self.value)
        compare = dict(_STAR_OPERATORS)[op]
        return compare(entry.star_count, bound)

    def filter(self, entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
        """保持输入顺序（即最新在前）"""
        return [e for e in entries if self.matches(e)]


def find_listing(entries: Iterable[CatalogEntry], name: str) -> CatalogEntry:
    """按显示名（去颜色标记）或仓库名精确查找目录条目

    Raises:
        NotFoundError: 不存在，附带编辑距离最近的名称建议
    """
    entries = list(entries)
    for entry in entries:
        if name in (strip_colors(entry.display_name), entry.repository):
            return entry
    logger.debug("目录中未找到 %s (共 %d 条)", name, len(entries))
    raise NotFoundError.for_name(
        "包", name, [strip_colors(e.display_name) for e in entries],
    )
