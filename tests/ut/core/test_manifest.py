"""包根目录与清单解析测试"""

import json
from pathlib import Path

import pytest

from modhub.core.dep.manifest import (
    DirectoryRoot,
    ZipRoot,
    find_manifest,
    open_root,
    parse_manifest_text,
    read_manifest,
)
from modhub.core.exceptions import ParseError


class TestOpenRoot:
    def test_zip_descends_into_single_top_dir(self, make_archive) -> None:
        path = make_archive("snap.zip", {"name": "Cool"}, prefix="owner-cool-abc123/")
        root = open_root(path)
        try:
            assert isinstance(root, ZipRoot)
            assert root.prefix == "owner-cool-abc123/"
            assert root.exists("mod.json")
        finally:
            root.close()

    def test_flat_zip(self, make_archive) -> None:
        path = make_archive("flat.zip", {"name": "Flat"}, files={"scripts/main.js": ""})
        root = open_root(path)
        try:
            assert root.prefix == ""  # type: ignore[attr-defined]
            assert root.exists("scripts")
        finally:
            root.close()

    def test_directory_descends(self, tmp_path: Path) -> None:
        inner = tmp_path / "pkg" / "inner"
        inner.mkdir(parents=True)
        (inner / "mod.json").write_text('{"name": "Dir"}', encoding="utf-8")
        root = open_root(tmp_path / "pkg")
        assert isinstance(root, DirectoryRoot)
        assert root.base == inner

    def test_bad_zip(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"not a zip")
        with pytest.raises(ParseError, match="无法打开归档"):
            open_root(bad)


class TestManifest:
    def test_priority_order(self, make_archive) -> None:
        path = make_archive(
            "both.zip", {"name": "FromMod"},
            files={"plugin.json": json.dumps({"name": "FromPlugin"})},
        )
        root = open_root(path)
        try:
            assert find_manifest(root) == "mod.json"
            assert read_manifest(root).name == "FromMod"
        finally:
            root.close()

    def test_plugin_hjson_relaxed(self, make_archive) -> None:
        text = (
            "{\n"
            "  // 作者备注\n"
            "  name: Relaxed Plugin\n"
            "  version: \"1.2\"\n"
            "  dependencies: [\n"
            "    Base Lib\n"
            "  ]\n"
            "}\n"
        )
        path = make_archive("p.zip", text, manifest_name="plugin.hjson")
        root = open_root(path)
        try:
            meta = read_manifest(root)
        finally:
            root.close()
        assert meta.name == "Relaxed Plugin"
        assert meta.version == "1.2"
        assert meta.dependencies == ["base-lib"]

    def test_hjson_comments_and_multiline(self) -> None:
        text = (
            "/* 块注释 */\n"
            "name: Cool Mod: Extended\n"
            "# 井号注释\n"
            "description:\n"
            "  '''\n"
            "  first line\n"
            "  second line\n"
            "  '''\n"
            "java: true\n"
        )
        meta = parse_manifest_text(text, source="mod.hjson")
        assert meta.name == "Cool Mod: Extended"
        assert meta.description == "first line\nsecond line"
        assert meta.java is True

    def test_json_manifest_accepts_comments(self) -> None:
        meta = parse_manifest_text('{\n  // 注释\n  "name": "Strict", "version": "3"\n}', source="mod.json")
        assert meta.name == "Strict"
        assert meta.version == "3"

    def test_missing_manifest(self, make_archive) -> None:
        path = make_archive("empty.zip", None, files={"README.md": "hi"})
        root = open_root(path)
        try:
            with pytest.raises(ParseError, match="未找到 mod.json"):
                read_manifest(root)
        finally:
            root.close()

    def test_version_cut_at_newline(self) -> None:
        meta = parse_manifest_text('{"name": "X", "version": "2.0\\nchangelog here"}')
        assert meta.version == "2.0"

    def test_missing_name(self) -> None:
        with pytest.raises(ParseError, match="name"):
            parse_manifest_text('{"version": "1"}')

    def test_garbage(self) -> None:
        with pytest.raises(ParseError):
            parse_manifest_text("{ this is : [ not valid")
