"""状态分类测试"""

from pathlib import Path

import pytest

from modhub.core.dep.manifest import DirectoryRoot
from modhub.core.dep.models import InstalledPackage, PackageMeta, PackageState
from modhub.core.dep.state import classify, classify_all


@pytest.mark.parametrize(
    ("supported", "missing", "preference", "expected"),
    [
        (False, False, True, PackageState.UNSUPPORTED),
        (False, True, False, PackageState.UNSUPPORTED),
        (True, True, True, PackageState.MISSING_DEPENDENCIES),
        (True, True, False, PackageState.MISSING_DEPENDENCIES),
        (True, False, False, PackageState.DISABLED),
        (True, False, True, PackageState.ENABLED),
    ],
)
def test_classify(supported: bool, missing: bool, preference: bool, expected: PackageState) -> None:
    assert classify(supported, missing, preference) is expected


def test_flipping_preference_enables() -> None:
    assert classify(True, False, False) is PackageState.DISABLED
    assert classify(True, False, True) is PackageState.ENABLED


def test_classify_all_sorts_by_state_then_name() -> None:
    def pkg(name: str, **kw: bool) -> InstalledPackage:
        return InstalledPackage(
            name=name, source=Path(name), root=DirectoryRoot(Path(name), Path(name)),
            meta=PackageMeta(name=name), **kw,
        )

    items = [
        pkg("zulu"),
        pkg("alpha"),
        pkg("off", enabled_preference=False),
        pkg("old", supported=False),
        pkg("broken"),
    ]
    items[4].set_resolution([], ["gone"])
    classify_all(items)
    assert [p.name for p in items] == ["old", "broken", "off", "alpha", "zulu"]
