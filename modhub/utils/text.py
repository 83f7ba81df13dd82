"""文本工具 - 编辑距离、近似匹配、颜色标记剥离"""

from __future__ import annotations

import re
from collections.abc import Iterable

# 目录中的显示名常带 [accent] / [#ff0000] 之类的颜色标记
_COLOR_TAG_RE = re.compile(r"\[(#?[a-zA-Z0-9]*)\]")

SUGGESTION_THRESHOLD = 3


def levenshtein(a: str, b: str) -> int:
    """经典编辑距离（插入/删除/替换代价均为 1）"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def closest_match(
    name: str,
    candidates: Iterable[str],
    threshold: int = SUGGESTION_THRESHOLD,
) -> str | None:
    """返回与 name 编辑距离最小且不超过 threshold 的候选（忽略大小写）"""
    best: str | None = None
    best_dist = threshold + 1
    needle = name.lower()
    for candidate in candidates:
        dist = levenshtein(needle, candidate.lower())
        if dist < best_dist:
            best, best_dist = candidate, dist
    return best


def strip_colors(text: str) -> str:
    return _COLOR_TAG_RE.sub("", text)
