"""已安装包数据模型

数据类:
- PackageMeta: 清单（mod.json / plugin.hjson 等）元信息
- PackageState: 生命周期状态
- InstalledPackage: 注册表中的一个已安装包
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from modhub.core.exceptions import ParseError

if TYPE_CHECKING:
    from modhub.core.dep.entrypoint import PackageEntryPoint
    from modhub.core.dep.manifest import PackageRoot


class PackageState(IntEnum):
    """包状态，数值即排序序号"""

    UNSUPPORTED = 0
    MISSING_DEPENDENCIES = 1
    DISABLED = 2
    ENABLED = 3


def _parse_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def parse_version(text: str) -> tuple[int, int]:
    """'126.2' -> (126, 2)；无法解析的部分按 0 处理"""
    major, _, minor = (text or "").partition(".")
    return _parse_int(major), _parse_int(minor) if minor else 0


def version_at_least(current: str, required: str) -> bool:
    """宿主版本 current 是否满足最低版本 required（空表示不限制）"""
    if not required or not required.strip():
        return True
    return parse_version(current) >= parse_version(required)


def derive_name(display: str) -> str:
    """清单 name -> 注册表内唯一名：小写、空格换连字符"""
    return display.strip().lower().replace(" ", "-")


@dataclass
class PackageMeta:
    """包清单元信息"""

    name: str
    display_name: str = ""
    author: str = ""
    description: str = ""
    version: str = ""
    main: str | None = None
    min_game_version: str = ""
    java: bool = False
    hidden: bool = False
    dependencies: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, *, source: str = "") -> PackageMeta:
        """从清单字典构造并清洗字段

        Raises:
            ParseError: 不是对象或缺少 name
        """
        if not isinstance(data, dict):
            raise ParseError(f"清单必须是对象: {source}")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ParseError(f"清单缺少 name 字段: {source}")

        deps = data.get("dependencies") or []
        if isinstance(deps, str):
            deps = [deps]
        if not isinstance(deps, list):
            raise ParseError(f"清单 dependencies 必须是列表: {source}")

        version = str(data.get("version") or "")
        # 不允许在版本号后面跟描述
        version = version.split("\n", 1)[0].strip()

        main = data.get("main")
        return cls(
            name=name.strip(),
            display_name=str(data.get("displayName") or name).strip(),
            author=str(data.get("author") or ""),
            description=str(data.get("description") or ""),
            version=version,
            main=str(main) if main else None,
            min_game_version=str(data.get("minGameVersion") or ""),
            java=bool(data.get("java", False)),
            hidden=bool(data.get("hidden", False)),
            dependencies=[derive_name(str(d)) for d in deps],
        )


@dataclass(eq=False)
class InstalledPackage:
    """已安装包

    由 PackageRegistry 独占持有。依赖引用是弱引用，
    不延长被依赖包的生命周期；每次解析都会整体重算。
    """

    name: str
    source: Path
    root: PackageRoot
    meta: PackageMeta
    main: PackageEntryPoint | None = None
    state: PackageState = PackageState.ENABLED
    supported: bool = True
    enabled_preference: bool = True
    repo: str | None = None
    pinned_id: str | None = None
    missing_dependencies: list[str] = field(default_factory=list)
    _resolved: list[weakref.ReferenceType[InstalledPackage]] = field(
        default_factory=list, repr=False,
    )

    @property
    def declared_dependencies(self) -> list[str]:
        return self.meta.dependencies

    @property
    def resolved_dependencies(self) -> list[InstalledPackage]:
        """已解析依赖（弱引用中仍存活的部分）"""
        return [p for p in (r() for r in self._resolved) if p is not None]

    def set_resolution(self, resolved: list[InstalledPackage], missing: list[str]) -> None:
        self._resolved = [weakref.ref(p) for p in resolved]
        self.missing_dependencies = list(missing)

    @property
    def enabled(self) -> bool:
        return self.state is PackageState.ENABLED

    @property
    def is_hidden(self) -> bool:
        return self.meta.hidden

    @property
    def is_pinned(self) -> bool:
        """外部订阅（创意工坊等）安装的包，不能在本地删除覆盖"""
        return self.pinned_id is not None

    @property
    def has_unmet_dependencies(self) -> bool:
        return bool(self.missing_dependencies)

    def dispose(self) -> None:
        """释放归档句柄"""
        self.root.close()
