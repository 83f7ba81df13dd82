"""目录检索测试"""

from __future__ import annotations

import pytest

from modhub.core.exceptions import NotFoundError, ValidationError
from modhub.core.models import CatalogEntry
from modhub.services.listing.search import SearchCriteria, find_listing


def _entry(repo: str, name: str, *, author: str = "anuke", stars: int = 0, desc: str = "") -> CatalogEntry:
    return CatalogEntry.from_dict({
        "repo": repo, "name": name, "author": author, "description": desc,
        "stars": stars, "lastUpdated": "2021-01-01T00:00:00Z",
    })


ENTRIES = [
    _entry("anuke/example-mod", "[accent]Example Mod", stars=40, desc="A template"),
    _entry("someone/turrets", "More Turrets", author="Someone", stars=10, desc="Adds turrets"),
    _entry("other/tiny", "Tiny", author="other", stars=2),
]


class TestSearchCriteria:
    def test_name_contains_ignores_colors_and_case(self) -> None:
        assert [e.repository for e in SearchCriteria("name", "example").filter(ENTRIES)] == ["anuke/example-mod"]

    def test_desc_alias(self) -> None:
        assert len(SearchCriteria("desc", "TURRETS").filter(ENTRIES)) == 1

    def test_author_exact(self) -> None:
        assert [e.display_name for e in SearchCriteria("author", "someone").filter(ENTRIES)] == ["More Turrets"]
        assert SearchCriteria("author", "some").filter(ENTRIES) == []

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(">10", 1), (">=10", 2), ("<10", 1), ("<=10", 2), ("=2", 1), ("40", 1)],
    )
    def test_stars_operators(self, value: str, expected: int) -> None:
        assert len(SearchCriteria("stars", value).filter(ENTRIES)) == expected

    def test_stars_not_a_number(self) -> None:
        with pytest.raises(ValidationError, match="stars"):
            SearchCriteria("stars", ">many")

    def test_unknown_field_suggests(self) -> None:
        with pytest.raises(ValidationError, match="author"):
            SearchCriteria("autor", "x")


class TestFindListing:
    def test_by_stripped_name_or_repo(self) -> None:
        assert find_listing(ENTRIES, "Example Mod").repository == "anuke/example-mod"
        assert find_listing(ENTRIES, "other/tiny").display_name == "Tiny"

    def test_not_found_with_suggestion(self) -> None:
        with pytest.raises(NotFoundError) as exc:
            find_listing(ENTRIES, "Exampel Mod")
        assert exc.value.suggestion == "Example Mod"
