"""包入口 - 宿主调用已加载代码的能力接口

入口以 ``"模块路径:类名"`` 声明（也接受 ``"模块路径.类名"``），
模块文件位于包根下，如 ``mymod/main.py``。没有入口的包只提供元数据，
调用方分发前须判断 ``package.main is not None``。

加载策略通过 EntryPointLoader 协议注入，默认 ModuleEntryPointLoader
从目录或 zip 归档中直接执行模块。
"""

from __future__ import annotations

import importlib.util
import logging
import re
import sys
import zipimport
from importlib.machinery import ModuleSpec
from typing import Any, Protocol

from modhub.core.dep.manifest import DirectoryRoot, PackageRoot, ZipRoot
from modhub.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_MODULE_CHARS = re.compile(r"[^a-zA-Z0-9_]")


class PackageEntryPoint:
    """入口基类，生命周期方法默认空实现，按需覆盖"""

    def init(self) -> None:
        """所有包加载完毕后调用"""

    def load_content(self) -> None:
        """按依赖顺序加载内容"""

    def register_server_commands(self, handler: Any) -> None:
        """注册服务端命令"""

    def register_client_commands(self, handler: Any) -> None:
        """注册客户端命令"""


class Plugin(PackageEntryPoint):
    """服务端插件入口；提供此入口的包一律隐藏"""


def default_main(name: str) -> str:
    """清单未声明 main 时的约定入口: 'My Mod' -> 'mymod.main:MyModMod'"""
    camel = name.replace(" ", "")
    return f"{camel.lower()}.main:{camel}Mod"


def split_main(main: str) -> tuple[str, str]:
    """'a.b:Cls' / 'a.b.Cls' -> ('a.b', 'Cls')

    Raises:
        ValidationError: 缺少模块或类名
    """
    if ":" in main:
        module, _, cls_name = main.partition(":")
    else:
        module, _, cls_name = main.rpartition(".")
    if not module or not cls_name:
        raise ValidationError(f"入口声明无效: {main!r}，应为 '模块路径:类名'")
    return module, cls_name


def module_file(root: PackageRoot, module: str) -> str | None:
    """模块在包根下对应的文件，不存在返回 None"""
    base = module.replace(".", "/")
    for rel in (f"{base}.py", f"{base}/__init__.py"):
        if root.exists(rel):
            return rel
    return None


def has_entry_file(root: PackageRoot, main: str) -> bool:
    try:
        module, _ = split_main(main)
    except ValidationError:
        return False
    return module_file(root, module) is not None


class EntryPointLoader(Protocol):
    """入口加载协议"""

    def load(self, root: PackageRoot, main: str, package_name: str) -> PackageEntryPoint:
        ...


class ModuleEntryPointLoader:
    """从包根执行 Python 模块并实例化入口类"""

    def load(self, root: PackageRoot, main: str, package_name: str) -> PackageEntryPoint:
        module_path, cls_name = split_main(main)
        rel = module_file(root, module_path)
        if rel is None:
            raise ValidationError(f"包 '{package_name}' 中找不到入口模块: {module_path}")

        # 末段必须与模块文件名一致，zipimporter 据此定位代码
        safe = _UNSAFE_MODULE_CHARS.sub("_", package_name)
        fullname = f"modhub_ext_{safe}.{module_path}"
        spec = self._spec_for(root, rel, fullname)
        if spec is None or spec.loader is None:
            raise ValidationError(f"无法为入口模块创建加载器: {root.location(rel)}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[fullname] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(fullname, None)
            raise ValidationError(f"执行入口模块失败: {root.location(rel)} - {e}") from e

        cls = getattr(module, cls_name, None)
        if not isinstance(cls, type) or not issubclass(cls, PackageEntryPoint):
            sys.modules.pop(fullname, None)
            raise ValidationError(
                f"入口 {main!r} 不是 PackageEntryPoint 子类 (包 '{package_name}')"
            )
        logger.info("已加载入口: %s -> %s", package_name, main)
        return cls()

    @staticmethod
    def _spec_for(root: PackageRoot, rel: str, fullname: str) -> ModuleSpec | None:
        is_package = rel.endswith("/__init__.py")
        if isinstance(root, ZipRoot):
            parent, _, _ = rel.rpartition("/")
            if is_package:
                parent = parent.rpartition("/")[0]
            importer = zipimport.zipimporter(root.location(parent))
            spec = importer.find_spec(fullname.rpartition(".")[2])
            if spec is not None:
                spec.name = fullname
            return spec
        if isinstance(root, DirectoryRoot):
            path = root.location(rel)
            locations = [root.location(rel.rpartition("/")[0])] if is_package else None
            return importlib.util.spec_from_file_location(
                fullname, path, submodule_search_locations=locations,
            )
        return None
