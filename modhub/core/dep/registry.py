"""已安装包注册表

职责:
- 进程启动时扫描托管目录（及外部订阅目录）加载包
- install(): 复制归档到托管目录 → 解析清单 → 可选加载入口 → 注册
- remove(): 先删除后备存储，成功后才从注册表移除
- 每次安装 / 移除 / 启停后全量重跑依赖解析与状态分类

注册表只应在应用线程上修改（见 modhub.utils.tasks）。
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Iterator
from pathlib import Path

from modhub.core.dep.entrypoint import (
    EntryPointLoader,
    ModuleEntryPointLoader,
    PackageEntryPoint,
    Plugin,
    default_main,
    has_entry_file,
)
from modhub.core.dep.manifest import MANIFEST_FILES, open_root, read_manifest
from modhub.core.dep.models import InstalledPackage, derive_name, version_at_least
from modhub.core.dep.resolver import DependencyResolver
from modhub.core.dep.state import classify_all
from modhub.core.exceptions import (
    ConflictError,
    ModHubError,
    NotFoundError,
    PackageIOError,
    UnsupportedEnvironmentError,
)
from modhub.core.preferences import Preferences

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"


class PackageRegistry:
    """已安装包集合 - 独占持有全部 InstalledPackage"""

    def __init__(
        self,
        mods_dir: str | Path,
        preferences: Preferences,
        *,
        workshop_dirs: Iterable[str | Path] = (),
        host_version: str = "",
        compiled_extension: str = ".jar",
        allow_entry_points: bool = True,
        skip_entry_points: bool = False,
        loader: EntryPointLoader | None = None,
        resolver: DependencyResolver | None = None,
    ) -> None:
        self.mods_dir = Path(mods_dir)
        self.preferences = preferences
        self.workshop_dirs = [Path(d) for d in workshop_dirs]
        self.host_version = host_version
        self.compiled_extension = compiled_extension
        self.allow_entry_points = allow_entry_points
        self.skip_entry_points = skip_entry_points
        self._loader: EntryPointLoader = loader or ModuleEntryPointLoader()
        self._resolver = resolver or DependencyResolver()
        self._packages: list[InstalledPackage] = []
        self.requires_reload = False

    # ---- 查询 ----

    def list(self) -> list[InstalledPackage]:
        """全部包，已按 (状态, 名称) 排序"""
        return list(self._packages)

    def get(self, name: str) -> InstalledPackage | None:
        return next((p for p in self._packages if p.name == name), None)

    def locate(self, name: str) -> InstalledPackage | None:
        """按名称查找启用中的包"""
        return next((p for p in self._packages if p.enabled and p.name == name), None)

    def find(self, name: str) -> InstalledPackage:
        """按内部名或显示名查找，找不到时给出近似建议

        Raises:
            NotFoundError: 不存在
        """
        for pkg in self._packages:
            if name in (pkg.name, pkg.meta.display_name, pkg.meta.name):
                return pkg
        raise NotFoundError.for_name(
            "已安装包", name, [p.meta.display_name for p in self._packages],
        )

    def each_enabled(self) -> Iterator[InstalledPackage]:
        return (p for p in self._packages if p.enabled)

    def ordered(self) -> list[InstalledPackage]:
        """依赖顺序排列的启用包，交给外部加载流程"""
        return self._resolver.ordered_enabled(self._packages)

    def entry_points(self) -> Iterator[tuple[InstalledPackage, PackageEntryPoint]]:
        """按依赖顺序产出可分发的入口（隐藏包除外）"""
        for pkg in self.ordered():
            if pkg.main is not None and not pkg.is_hidden:
                yield pkg, pkg.main

    def package_strings(self) -> list[str]:
        """可见启用包的 'name:version' 列表（用于与远端比对）"""
        return [
            f"{p.name}:{p.meta.version}"
            for p in self._packages if p.enabled and not p.is_hidden
        ]

    def incompatibility(self, remote: Iterable[str]) -> tuple[list[str], list[str]]:
        """与远端 'name:version' 列表比对

        返回 (仅本地存在, 仅远端存在)。
        """
        local = self.package_strings()
        remote_left = list(remote)
        local_only: list[str] = []
        for entry in local:
            if entry in remote_left:
                remote_left.remove(entry)
            else:
                local_only.append(entry)
        return local_only, remote_left

    # ---- 加载 ----

    def load(self) -> None:
        """扫描托管目录与外部订阅目录，加载全部包

        已注册的文件会跳过，重复调用只加载新出现的包。
        """
        self.mods_dir.mkdir(parents=True, exist_ok=True)
        known = {p.source for p in self._packages}
        for file in sorted(self.mods_dir.iterdir()):
            if file in known or not self._is_package_file(file):
                continue
            logger.debug("加载包: %s", file)
            self._try_load(file)

        for directory in self.workshop_dirs:
            if not directory.is_dir():
                continue
            for file in sorted(directory.iterdir()):
                if file in known:
                    continue
                self._try_load(file, pinned_id=file.name)

        self.refresh()
        logger.info(
            "已加载 %d 个包 (启用 %d)",
            len(self._packages), sum(1 for _ in self.each_enabled()),
        )

    def _is_package_file(self, file: Path) -> bool:
        if file.is_dir():
            return any((file / m).exists() for m in MANIFEST_FILES)
        return file.suffix in (ARCHIVE_SUFFIX, self.compiled_extension)

    def _try_load(self, file: Path, pinned_id: str | None = None) -> None:
        try:
            self._packages.append(self._load_package(file, pinned_id=pinned_id))
        except ModHubError as e:
            logger.error("加载包 %s 失败，跳过: %s", file, e)
        except Exception:
            logger.exception("加载包 %s 失败，跳过", file)

    def _load_package(
        self,
        source: Path,
        *,
        overwrite: bool = False,
        pinned_id: str | None = None,
    ) -> InstalledPackage:
        root = open_root(source)
        try:
            meta = read_manifest(root)
            name = derive_name(meta.name)
            self._check_replaceable(name, overwrite)

            supported = version_at_least(self.host_version, meta.min_game_version)
            enabled_preference = self.preferences.is_enabled(name)
            main_decl = meta.main or default_main(meta.name)

            entry: PackageEntryPoint | None = None
            # 入口模块存在或显式声明 java 时才尝试加载
            if (
                (has_entry_file(root, main_decl) or meta.java)
                and not self.skip_entry_points
                and enabled_preference
                and supported
            ):
                if not self.allow_entry_points:
                    raise UnsupportedEnvironmentError(
                        f"当前平台不支持加载包入口代码: {name}"
                    )
                entry = self._loader.load(root, main_decl, name)

            # 插件一律隐藏
            if isinstance(entry, Plugin):
                meta.hidden = True

            logger.info("已读取包 '%s' (%s) <- %s", name, meta.version or "-", source)
            return InstalledPackage(
                name=name,
                source=source,
                root=root,
                meta=meta,
                main=entry,
                supported=supported,
                enabled_preference=enabled_preference,
                pinned_id=pinned_id,
            )
        except Exception:
            root.close()
            raise

    def _check_replaceable(self, name: str, overwrite: bool) -> None:
        other = self.get(name)
        if other is None:
            return
        # 外部订阅的包只能退订，不能在本地删除
        if not overwrite or other.is_pinned:
            raise ConflictError(f"名为 '{name}' 的包已导入")

    def _retire(self, other: InstalledPackage) -> None:
        """新包完全加载后再下线同名旧包"""
        name = other.name
        other.dispose()
        if not self._delete_storage(other):
            logger.warning("覆盖导入时未能删除旧包存储: %s", other.source)
        self._packages.remove(other)
        logger.info("已覆盖旧包: %s", name)

    # ---- 安装 / 移除 ----

    def install(
        self,
        archive: str | Path,
        *,
        repo: str | None = None,
        overwrite: bool = True,
    ) -> InstalledPackage:
        """把归档安装到托管目录并注册

        磁盘文件名取归档名，冲突时追加数字后缀。
        复制之后的任何失败都会删除这份副本再抛出。

        Raises:
            NotFoundError: 归档不存在
            PackageIOError: 复制失败
            ParseError / ConflictError / UnsupportedEnvironmentError / ValidationError
        """
        archive = Path(archive)
        if not archive.is_file():
            raise NotFoundError(f"归档不存在: {archive}")

        self.mods_dir.mkdir(parents=True, exist_ok=True)
        base = archive.stem
        final = base
        count = 1
        while (self.mods_dir / f"{final}{ARCHIVE_SUFFIX}").exists():
            final = f"{base}{count}"
            count += 1
        dest = self.mods_dir / f"{final}{ARCHIVE_SUFFIX}"

        try:
            shutil.copyfile(archive, dest)
        except OSError as e:
            dest.unlink(missing_ok=True)
            raise PackageIOError(f"复制归档失败: {archive} -> {dest} - {e}") from e

        try:
            pkg = self._load_package(dest, overwrite=overwrite)
            # 导入即启用
            self.preferences.set_enabled(pkg.name, True)
        except ModHubError:
            dest.unlink(missing_ok=True)
            raise
        except Exception as e:
            dest.unlink(missing_ok=True)
            raise PackageIOError(f"导入失败: {archive} - {e}") from e

        previous = self.get(pkg.name)
        if previous is not None:
            self._retire(previous)
        pkg.repo = repo
        self._packages.append(pkg)
        self.requires_reload = True
        self.refresh()
        logger.info(
            "已安装包 '%s'%s", pkg.name, f" (来自 {repo})" if repo else "",
            extra={"package": pkg.name, "repository": repo},
        )
        return pkg

    def remove(self, pkg: InstalledPackage) -> bool:
        """删除包的后备存储并注销

        删除失败时记录错误并返回 False，注册表保持不变。
        """
        if pkg not in self._packages:
            raise NotFoundError(f"包未注册: {pkg.name}")

        pkg.dispose()
        if not self._delete_storage(pkg):
            logger.error("无法删除包 '%s'，请检查文件权限: %s", pkg.name, pkg.source)
            try:
                pkg.root = open_root(pkg.source)
            except ModHubError:
                logger.warning("重新打开包存储失败: %s", pkg.source)
            return False

        self._packages.remove(pkg)
        self.requires_reload = True
        self.refresh()
        logger.info("已移除包 '%s'", pkg.name, extra={"package": pkg.name})
        return True

    @staticmethod
    def _delete_storage(pkg: InstalledPackage) -> bool:
        try:
            if pkg.source.is_dir():
                shutil.rmtree(pkg.source)
            else:
                pkg.source.unlink()
        except OSError as e:
            logger.debug("删除 %s 失败: %s", pkg.source, e)
            return False
        return True

    # ---- 启停 / 解析 ----

    def set_enabled(self, pkg: InstalledPackage, enabled: bool) -> None:
        """持久化启用偏好并重新解析"""
        if pkg.enabled_preference == enabled:
            return
        self.preferences.set_enabled(pkg.name, enabled)
        self.requires_reload = True
        self.refresh()
        logger.info("包 '%s' 已%s", pkg.name, "启用" if enabled else "禁用", extra={"package": pkg.name})

    def refresh(self) -> None:
        """全量重跑依赖解析 + 状态分类（幂等）"""
        for pkg in self._packages:
            pkg.enabled_preference = self.preferences.is_enabled(pkg.name)
        self._resolver.resolve_all(self._packages)
        classify_all(self._packages)
