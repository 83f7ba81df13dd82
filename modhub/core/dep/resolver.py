"""依赖解析器

职责:
- resolve_all(): 为每个已安装包重新计算已解析 / 缺失依赖（全量重算，非增量）
- ordered_enabled(): 对启用包做深度优先拓扑排序，依赖总在被依赖者之前

"启用集合" 取不动点：候选为 (受支持 且 偏好启用) 的包，
反复剔除依赖未能满足的候选，直到集合不再变化。
这样 A -> B -> C 链上 C 缺失时，A 与 B 都会被判为缺少依赖。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from modhub.core.dep.models import InstalledPackage

logger = logging.getLogger(__name__)


class DependencyResolver:
    """依赖解析器 - 无状态，每次调用都从头计算"""

    def resolve_all(self, packages: Iterable[InstalledPackage]) -> None:
        """重算所有包的依赖解析结果

        执行后对每个包都满足
        len(resolved_dependencies) + len(missing_dependencies) == len(declared_dependencies)
        """
        packages = list(packages)
        enabled = {
            p.name: p for p in packages
            if p.supported and p.enabled_preference
        }

        changed = True
        while changed:
            changed = False
            for name, pkg in list(enabled.items()):
                if any(dep not in enabled for dep in pkg.declared_dependencies):
                    del enabled[name]
                    changed = True

        for pkg in packages:
            resolved: list[InstalledPackage] = []
            missing: list[str] = []
            for dep in pkg.declared_dependencies:
                target = enabled.get(dep)
                if target is None:
                    missing.append(dep)
                else:
                    resolved.append(target)
            pkg.set_resolution(resolved, missing)
            if missing:
                logger.debug("包 %s 缺少依赖: %s", pkg.name, ", ".join(missing))

    def ordered_enabled(self, packages: Iterable[InstalledPackage]) -> list[InstalledPackage]:
        """按依赖顺序返回启用包

        遍历按包名升序；递归访问未访问的已解析依赖后再追加自身。
        正在访问路径上的包视为已访问：环不报错，只记录警告，
        环内的相对顺序仅保证确定性。
        """
        visited: set[str] = set()
        on_path: set[str] = set()
        result: list[InstalledPackage] = []

        def visit(pkg: InstalledPackage) -> None:
            visited.add(pkg.name)
            on_path.add(pkg.name)
            for dep in pkg.resolved_dependencies:
                if not dep.enabled:
                    continue
                if dep.name in on_path:
                    logger.warning("检测到循环依赖: %s -> %s", pkg.name, dep.name)
                elif dep.name not in visited:
                    visit(dep)
            on_path.discard(pkg.name)
            result.append(pkg)

        for pkg in sorted(packages, key=lambda p: p.name):
            if pkg.enabled and pkg.name not in visited:
                visit(pkg)
        return result
