"""文本工具测试"""

from modhub.utils.text import closest_match, levenshtein, strip_colors


class TestLevenshtein:
    def test_basic(self) -> None:
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0


class TestClosestMatch:
    def test_picks_nearest_within_threshold(self) -> None:
        assert closest_match("plugn", ["plugin", "pluginx", "other"]) == "plugin"

    def test_case_insensitive(self) -> None:
        assert closest_match("EXAMPLE", ["example"]) == "example"

    def test_none_beyond_threshold(self) -> None:
        assert closest_match("abcdefgh", ["zzzz"]) is None


def test_strip_colors() -> None:
    assert strip_colors("[accent]Cool[] [#ff0000]Mod") == "Cool Mod"
