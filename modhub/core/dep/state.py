"""包状态分类器

状态只由 (是否受支持, 是否缺少依赖, 启用偏好) 三个事实推导，
不在别处直接赋值。
"""

from __future__ import annotations

from modhub.core.dep.models import InstalledPackage, PackageState


def classify(supported: bool, missing_dependencies: bool, enabled_preference: bool) -> PackageState:
    if not supported:
        return PackageState.UNSUPPORTED
    if missing_dependencies:
        return PackageState.MISSING_DEPENDENCIES
    if not enabled_preference:
        return PackageState.DISABLED
    return PackageState.ENABLED


def classify_all(packages: list[InstalledPackage]) -> None:
    """为每个包写入 state，并按 (状态序号, 名称) 原地排序"""
    for pkg in packages:
        pkg.state = classify(
            pkg.supported, pkg.has_unmet_dependencies, pkg.enabled_preference,
        )
    packages.sort(key=sort_key)


def sort_key(pkg: InstalledPackage) -> tuple[int, str]:
    return int(pkg.state), pkg.name
