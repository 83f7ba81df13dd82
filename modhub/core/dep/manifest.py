"""包根目录与清单解析

包的后备存储可以是目录，也可以是 zip 归档（含编译型 .jar）。
若根下只有一个子目录（如 GitHub zipball 的 owner-repo-sha/），
则以该子目录作为包根。

清单文件按优先级查找: mod.json, mod.hjson, plugin.json, plugin.hjson。
两种后缀都按 Hjson 解析（JSON 的超集: 注释、无引号值、''' 多行字符串）。
"""

from __future__ import annotations

import logging
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path

import hjson

from modhub.core.dep.models import PackageMeta
from modhub.core.exceptions import ParseError

logger = logging.getLogger(__name__)

MANIFEST_FILES = ("mod.json", "mod.hjson", "plugin.json", "plugin.hjson")


class PackageRoot(ABC):
    """包内容的只读视图，路径一律使用 '/' 分隔的相对路径"""

    def __init__(self, source: Path) -> None:
        self.source = source

    @abstractmethod
    def exists(self, rel: str) -> bool:
        ...

    @abstractmethod
    def read_text(self, rel: str) -> str:
        ...

    @abstractmethod
    def location(self, rel: str = "") -> str:
        """rel 在导入系统中的定位串（目录路径或 archive.zip/prefix/rel）"""

    def close(self) -> None:
        pass


class DirectoryRoot(PackageRoot):
    def __init__(self, source: Path, base: Path) -> None:
        super().__init__(source)
        self.base = base

    def exists(self, rel: str) -> bool:
        return (self.base / rel).exists()

    def read_text(self, rel: str) -> str:
        return (self.base / rel).read_text(encoding="utf-8")

    def location(self, rel: str = "") -> str:
        return str(self.base / rel) if rel else str(self.base)


class ZipRoot(PackageRoot):
    def __init__(self, source: Path, archive: zipfile.ZipFile, prefix: str) -> None:
        super().__init__(source)
        self.archive = archive
        self.prefix = prefix
        self._names = set(archive.namelist())

    def exists(self, rel: str) -> bool:
        full = self.prefix + rel
        if full in self._names:
            return True
        # 目录条目在部分归档中不存在，按前缀判断
        directory = full.rstrip("/") + "/"
        return any(n.startswith(directory) for n in self._names)

    def read_text(self, rel: str) -> str:
        with self.archive.open(self.prefix + rel) as f:
            return f.read().decode("utf-8")

    def location(self, rel: str = "") -> str:
        inner = (self.prefix + rel).rstrip("/")
        return f"{self.source}/{inner}" if inner else str(self.source)

    def close(self) -> None:
        self.archive.close()


def _single_top_dir_in_zip(names: list[str]) -> str:
    tops = {n.split("/", 1)[0] for n in names if n}
    if len(tops) != 1:
        return ""
    top = tops.pop()
    if any(n.startswith(top + "/") for n in names):
        return top + "/"
    return ""


def open_root(source: Path) -> PackageRoot:
    """打开包的后备存储

    Raises:
        ParseError: 既不是目录也不是合法 zip 归档
    """
    if source.is_dir():
        children = [c for c in source.iterdir() if not c.name.startswith(".")]
        if len(children) == 1 and children[0].is_dir():
            return DirectoryRoot(source, children[0])
        return DirectoryRoot(source, source)

    try:
        archive = zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError) as e:
        raise ParseError(f"无法打开归档: {source} - {e}") from e
    return ZipRoot(source, archive, _single_top_dir_in_zip(archive.namelist()))


def find_manifest(root: PackageRoot) -> str | None:
    for name in MANIFEST_FILES:
        if root.exists(name):
            return name
    return None


def parse_manifest_text(text: str, *, source: str = "") -> PackageMeta:
    """解析 Hjson 清单文本

    Raises:
        ParseError: 语法错误，或字段无效
    """
    try:
        data = hjson.loads(text)
    except hjson.HjsonDecodeError as e:
        raise ParseError(f"清单格式错误: {source} - {e}") from e
    return PackageMeta.from_dict(data, source=source)


def read_manifest(root: PackageRoot) -> PackageMeta:
    """定位并解析包清单

    Raises:
        ParseError: 没有清单文件或清单无效
    """
    manifest = find_manifest(root)
    if manifest is None:
        logger.warning("包 %s 缺少 [mod/plugin].[h]json 清单，跳过", root.source)
        raise ParseError(f"无效文件: 未找到 mod.json ({root.source})")
    try:
        text = root.read_text(manifest)
    except (OSError, UnicodeDecodeError, KeyError) as e:
        raise ParseError(f"读取清单失败: {root.location(manifest)} - {e}") from e
    return parse_manifest_text(text, source=root.location(manifest))
