"""依赖解析与加载顺序测试"""

from __future__ import annotations

import gc
import logging
from pathlib import Path

import pytest

from modhub.core.dep.manifest import DirectoryRoot
from modhub.core.dep.models import InstalledPackage, PackageMeta, PackageState
from modhub.core.dep.resolver import DependencyResolver
from modhub.core.dep.state import classify_all


def _pkg(name: str, *deps: str, supported: bool = True, enabled: bool = True) -> InstalledPackage:
    source = Path(name)
    return InstalledPackage(
        name=name,
        source=source,
        root=DirectoryRoot(source, source),
        meta=PackageMeta(name=name, dependencies=list(deps)),
        supported=supported,
        enabled_preference=enabled,
    )


def _resolve(*packages: InstalledPackage) -> list[InstalledPackage]:
    items = list(packages)
    DependencyResolver().resolve_all(items)
    classify_all(items)
    return items


class TestResolveAll:
    def test_completeness(self) -> None:
        items = _resolve(
            _pkg("a", "b", "c", "ghost"),
            _pkg("b"),
            _pkg("c", "b", enabled=False),
            _pkg("d", "a", supported=False),
        )
        for p in items:
            assert len(p.resolved_dependencies) + len(p.missing_dependencies) == len(p.declared_dependencies)

    def test_missing_propagates_along_chain(self) -> None:
        a, b = _pkg("a", "b"), _pkg("b", "c")
        _resolve(a, b)
        assert b.missing_dependencies == ["c"]
        assert a.missing_dependencies == ["b"]
        assert a.state is PackageState.MISSING_DEPENDENCIES

    def test_disabled_dependency_is_missing(self) -> None:
        a, b = _pkg("a", "b"), _pkg("b", enabled=False)
        _resolve(a, b)
        assert a.missing_dependencies == ["b"]
        assert b.state is PackageState.DISABLED

    def test_unsupported_dependency_is_missing(self) -> None:
        a, b = _pkg("a", "b"), _pkg("b", supported=False)
        _resolve(a, b)
        assert a.state is PackageState.MISSING_DEPENDENCIES
        assert b.state is PackageState.UNSUPPORTED

    def test_recomputed_after_toggle(self) -> None:
        a, b = _pkg("a", "b"), _pkg("b", enabled=False)
        _resolve(a, b)
        assert a.state is PackageState.MISSING_DEPENDENCIES

        b.enabled_preference = True
        _resolve(a, b)
        assert a.state is PackageState.ENABLED
        assert a.resolved_dependencies == [b]

    def test_dependency_links_are_weak(self) -> None:
        a, b = _pkg("a", "b"), _pkg("b")
        _resolve(a, b)
        del b
        gc.collect()
        assert a.resolved_dependencies == []


class TestOrderedEnabled:
    def test_dependencies_first(self) -> None:
        items = _resolve(_pkg("app", "lib"), _pkg("lib", "core"), _pkg("core"), _pkg("zeta"))
        names = [p.name for p in DependencyResolver().ordered_enabled(items)]
        assert names.index("core") < names.index("lib") < names.index("app")
        assert set(names) == {"app", "lib", "core", "zeta"}

    def test_independent_packages_by_name(self) -> None:
        items = _resolve(_pkg("c"), _pkg("a"), _pkg("b"))
        assert [p.name for p in DependencyResolver().ordered_enabled(items)] == ["a", "b", "c"]

    def test_excludes_non_enabled(self) -> None:
        items = _resolve(_pkg("a"), _pkg("b", enabled=False), _pkg("c", "missing"))
        assert [p.name for p in DependencyResolver().ordered_enabled(items)] == ["a"]

    def test_cycle_tolerated_and_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        items = _resolve(_pkg("a", "b"), _pkg("b", "a"))
        with caplog.at_level(logging.WARNING, logger="modhub.core.dep.resolver"):
            first = [p.name for p in DependencyResolver().ordered_enabled(items)]
            second = [p.name for p in DependencyResolver().ordered_enabled(items)]
        assert first == second == ["b", "a"]
        assert "循环依赖" in caplog.text
