"""
Tests for resource identity resolution.

Tests the manifest rule chain, the root fallback and ResourceMap caching.
"""
from pathlib import Path

import pytest
from unittest.mock import MagicMock

from hotforge.resources import (
    ManifestProbe,
    ResourceResolver,
    apply_rules,
    is_resource_name,
    parse_declared_name,
    read_manifest_text,
    root_fallback_name,
)


def write_manifest(directory: Path, text: str = "fx_version 'cerulean'\n") -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "fxmanifest.lua").write_text(text, encoding="utf-8")


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


# =============================================================================
# Naming and Parsing
# =============================================================================


class TestNaming:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("example", True),
            ("[misc]", False),
            ("client", False),
            ("server", False),
            ("shared", False),
            ("html", False),
            ("", False),
            ("   ", False),
            (None, False),
        ],
    )
    def test_is_resource_name(self, name, expected):
        assert is_resource_name(name) is expected


class TestParseDeclaredName:
    def test_single_quotes(self):
        assert parse_declared_name("fx_version 'cerulean'\nname 'example'\n") == "example"

    def test_double_quotes_with_equals(self):
        assert parse_declared_name('name = "banking"') == "banking"

    def test_no_declaration(self):
        assert parse_declared_name("fx_version 'cerulean'\nauthor 'me'\n") is None

    def test_ignores_name_inside_other_keys(self):
        assert parse_declared_name("description 'name \"x\"'") is None


# =============================================================================
# Rule Chain
# =============================================================================


class TestRules:
    def test_declared_name_wins(self, tmp_path):
        probe = ManifestProbe(tmp_path / "dir", tmp_path, declared_name="declared")
        assert apply_rules(probe) == "declared"

    def test_directory_name_when_undeclared(self, tmp_path):
        probe = ManifestProbe(tmp_path / "example", tmp_path, declared_name=None)
        assert apply_rules(probe) == "example"

    def test_container_uses_nearest_named_segment(self, tmp_path):
        probe = ManifestProbe(tmp_path / "outer" / "[misc]", tmp_path, declared_name=None)
        assert apply_rules(probe) == "outer"

    def test_container_never_walks_above_root(self, tmp_path):
        root = tmp_path / "root"
        probe = ManifestProbe(root / "[misc]", root, declared_name=None)
        assert apply_rules(probe) is None

    def test_structural_declared_name_rejected(self, tmp_path):
        probe = ManifestProbe(tmp_path / "example", tmp_path, declared_name="client")
        assert apply_rules(probe) == "example"

    def test_root_fallback_uses_directories_only(self, tmp_path):
        assert root_fallback_name(tmp_path / "[misc]" / "a" / "x.lua", tmp_path) == "a"
        assert root_fallback_name(tmp_path / "x.lua", tmp_path) is None
        assert root_fallback_name(tmp_path / "client" / "x.lua", tmp_path) is None

    def test_root_fallback_outside_root(self, tmp_path):
        assert root_fallback_name(Path("/elsewhere/a/x.lua"), tmp_path / "root") is None


# =============================================================================
# Resolver
# =============================================================================


class TestResourceResolver:
    """Tests for path to resource resolution."""

    def test_resolves_from_nested_file(self, tmp_path):
        write_manifest(tmp_path / "[misc]" / "example")
        changed = touch(tmp_path / "[misc]" / "example" / "client" / "main.js")

        resolver = ResourceResolver(tmp_path)
        assert resolver.resolve(changed) == "example"

    def test_declared_name_preferred(self, tmp_path):
        write_manifest(tmp_path / "folder", "name 'renamed'\n")
        changed = touch(tmp_path / "folder" / "server" / "main.js")

        assert ResourceResolver(tmp_path).resolve(changed) == "renamed"

    def test_relative_path_resolved_against_root(self, tmp_path):
        write_manifest(tmp_path / "a")
        touch(tmp_path / "a" / "client" / "index.js")

        assert ResourceResolver(tmp_path).resolve("a/client/index.js") == "a"

    def test_structural_directory_manifest_skipped(self, tmp_path):
        write_manifest(tmp_path / "a")
        write_manifest(tmp_path / "a" / "client", "name 'client'\n")
        changed = touch(tmp_path / "a" / "client" / "index.js")

        assert ResourceResolver(tmp_path).resolve(changed) == "a"

    def test_root_manifest_not_consulted(self, tmp_path):
        write_manifest(tmp_path, "name 'root'\n")
        changed = touch(tmp_path / "[misc]" / "b" / "x.lua")

        assert ResourceResolver(tmp_path).resolve(changed) == "b"

    def test_structural_change_without_manifest_is_none(self, tmp_path):
        """A change in a structural subdirectory with no manifest up to the root resolves to nothing."""
        changed = touch(tmp_path / "client" / "util.lua")
        assert ResourceResolver(tmp_path).resolve(changed) is None

    def test_container_and_structural_only_is_none(self, tmp_path):
        changed = touch(tmp_path / "[misc]" / "client" / "util.lua")
        assert ResourceResolver(tmp_path).resolve(changed) is None

    def test_fallback_without_manifest(self, tmp_path):
        changed = touch(tmp_path / "[misc]" / "loose" / "client" / "x.lua")
        assert ResourceResolver(tmp_path).resolve(changed) == "loose"

    def test_second_resolve_hits_cache(self, tmp_path):
        """Resolving a path twice never re-reads manifests."""
        write_manifest(tmp_path / "a")
        changed = touch(tmp_path / "a" / "client" / "index.js")
        reader = MagicMock(side_effect=read_manifest_text)

        resolver = ResourceResolver(tmp_path, manifest_reader=reader)
        assert resolver.resolve(changed) == "a"
        calls = reader.call_count

        assert resolver.resolve(changed) == "a"
        assert reader.call_count == calls

    def test_sibling_uses_cached_ancestor(self, tmp_path):
        write_manifest(tmp_path / "a")
        first = touch(tmp_path / "a" / "client" / "index.js")
        second = touch(tmp_path / "a" / "server" / "main.js")
        reader = MagicMock(side_effect=read_manifest_text)

        resolver = ResourceResolver(tmp_path, manifest_reader=reader)
        resolver.resolve(first)
        calls = reader.call_count

        assert resolver.resolve(second) == "a"
        # Only the server directory is new; the plugin directory comes from the cache.
        assert reader.call_count == calls

    def test_scan_populates_map(self, tmp_path):
        write_manifest(tmp_path / "[misc]" / "a")
        write_manifest(tmp_path / "b", "name 'bee'\n")

        resolver = ResourceResolver(tmp_path)
        assert resolver.scan() == 2
        assert sorted(resolver.resource_map.values()) == ["a", "bee"]
        assert len(resolver) == 2

    def test_scan_missing_directory(self, tmp_path):
        assert ResourceResolver(tmp_path / "missing").scan() == 0

    def test_resolve_after_scan_reads_nothing(self, tmp_path):
        write_manifest(tmp_path / "a")
        changed = touch(tmp_path / "a" / "index.lua")
        reader = MagicMock(side_effect=read_manifest_text)

        resolver = ResourceResolver(tmp_path, manifest_reader=reader)
        resolver.scan()
        calls = reader.call_count

        assert resolver.resolve(changed) == "a"
        assert reader.call_count == calls
