# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the build graph indexer and the manifest resolver."""

import logging
from pathlib import Path

import pytest

from fuchsiaware.build_graph import (
    BuildGraph,
    BuildGraphIndexer,
    ManifestResolver,
    build_manifest_table,
)
from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import ManifestTable
from fuchsiaware.protocol import ComponentManifestRecord, IndexErrorKind, MatchKind

from conftest import BASIC_LOG, COMPILE_QUX, META_FAR_FOO, PM_FOO, VALIDATE_BAR

BASE = Path("/fuchsia")


def _record(target: str, name: str, manifest: str) -> ComponentManifestRecord:
    return ComponentManifestRecord(
        component_target_path=target, component_name=name, manifest_path=manifest
    )


@pytest.fixture
def heuristics_config():
    return LinkIndexConfig(use_heuristics_to_find_more_links=True)


# =============================================================================
# BuildGraphIndexer
# =============================================================================


class TestBuildGraphIndexer:
    """Tests for BuildGraphIndexer."""

    def test_collects_all_maps(self):
        graph = BuildGraphIndexer().index_lines(BASIC_LOG)

        assert graph.component_to_packages == {"src/bar:bar": ["src/bar:foo"]}
        assert graph.component_manifests == {
            "src/bar:bar": _record("src/bar:bar", "bar", "src/bar/meta/bar.cmx")
        }
        assert graph.component_to_sub_components == {"src/bar:bar": ["baz"]}
        assert graph.package_names == {"src/bar:foo": "foo"}
        assert graph.missing_groups() == []

    def test_matched_kinds(self):
        graph = BuildGraphIndexer().index_lines(BASIC_LOG)

        assert graph.matched_kinds == {
            MatchKind.PACKAGE_ASSEMBLY,
            MatchKind.SUB_COMPONENTS,
            MatchKind.VALIDATION_COMMAND,
            MatchKind.PACKAGE_NAMING,
        }

    def test_component_in_several_packages(self):
        other = (
            "build obj/src/bar/foo-tests/meta.far: __src_bar_foo-tests___rule "
            "obj/src/bar/foo-tests_manifest | obj/src/bar/bar.stamp"
        )

        graph = BuildGraphIndexer().index_lines([META_FAR_FOO, other])

        assert graph.component_to_packages["src/bar:bar"] == [
            "src/bar:foo",
            "src/bar:foo-tests",
        ]

    def test_continued_statement_is_matched(self):
        lines = [
            "  command = ../../host_x64/pm -o obj/src/bar/foo $\n",
            "      -m obj/src/bar/foo.manifest -n foo -version 0\n",
        ]

        graph = BuildGraphIndexer().index_lines(lines)

        assert graph.package_names == {"src/bar:foo": "foo"}

    def test_obj_manifest_uses_configured_build_dir(self):
        statement = VALIDATE_BAR.replace(
            "../../src/bar/meta/bar.cmx", "obj/src/bar/bar_generated.cmx"
        )
        config = LinkIndexConfig(build_dir="out/arm64")

        graph = BuildGraphIndexer(config).index_lines([statement])

        record = graph.component_manifests["src/bar:bar"]
        assert record.manifest_path == "out/arm64/obj/src/bar/bar_generated.cmx"

    def test_duplicate_manifest_last_write_wins(self):
        other = VALIDATE_BAR.replace("meta/bar.cmx", "meta/bar_v2.cmx")

        graph = BuildGraphIndexer().index_lines([VALIDATE_BAR, other])

        assert graph.component_manifests["src/bar:bar"].manifest_path == "src/bar/meta/bar_v2.cmx"
        assert graph.diagnostics == []

    def test_duplicate_reported_when_debugging(self, caplog):
        caplog.set_level(logging.DEBUG, logger="fuchsiaware.build_graph")
        other = VALIDATE_BAR.replace("meta/bar.cmx", "meta/bar_v2.cmx")

        graph = BuildGraphIndexer().index_lines([VALIDATE_BAR, other])

        assert [d.kind for d in graph.diagnostics] == [IndexErrorKind.DUPLICATE_ASSOCIATION]
        assert not graph.diagnostics[0].fatal
        assert "src/bar:bar" in graph.diagnostics[0].message
        assert "duplicate entries" in caplog.text

    def test_identical_duplicate_not_reported(self, caplog):
        caplog.set_level(logging.DEBUG, logger="fuchsiaware.build_graph")

        graph = BuildGraphIndexer().index_lines([VALIDATE_BAR, VALIDATE_BAR])

        assert graph.diagnostics == []

    def test_first_match_logged_once(self, caplog):
        caplog.set_level(logging.DEBUG, logger="fuchsiaware.build_graph")

        BuildGraphIndexer(source_name="toolchain.ninja").index_lines([PM_FOO, PM_FOO])

        examples = [r for r in caplog.records if "Matching package targets" in r.getMessage()]
        assert len(examples) == 1
        assert "toolchain.ninja" in examples[0].getMessage()


class TestCheck:
    """Tests for BuildGraphIndexer.check."""

    def test_complete_graph(self):
        indexer = BuildGraphIndexer()

        assert indexer.check(indexer.index_lines(BASIC_LOG)) == []

    def test_compile_command_satisfies_manifest_group(self):
        indexer = BuildGraphIndexer()

        graph = indexer.index_lines([META_FAR_FOO, COMPILE_QUX, PM_FOO])

        assert indexer.check(graph) == []

    def test_missing_assembly(self, caplog):
        indexer = BuildGraphIndexer(source_name="out/default/toolchain.ninja")

        errors = indexer.check(indexer.index_lines([VALIDATE_BAR, PM_FOO]))

        assert len(errors) == 1
        assert errors[0].kind is IndexErrorKind.FORMAT_MISMATCH
        assert errors[0].fatal
        assert "package assembly" in errors[0].message
        assert "meta\\.far" in errors[0].message
        assert "out/default/toolchain.ninja" in caplog.text

    def test_empty_log_reports_every_group(self):
        indexer = BuildGraphIndexer()

        errors = indexer.check(indexer.index_lines([]))

        assert len(errors) == 3
        assert "validation_command" in errors[1].message
        assert "compile_command" in errors[1].message


# =============================================================================
# ManifestResolver
# =============================================================================


class TestManifestResolver:
    """Tests for ManifestResolver."""

    def test_manifest_location_is_absolute_and_normalized(self):
        resolver = ManifestResolver(BASE)

        assert resolver.manifest_location("src/bar/../bar/meta/bar.cmx") == Path(
            "/fuchsia/src/bar/meta/bar.cmx"
        )

    def test_resolves_links(self):
        graph = BuildGraphIndexer().index_lines(BASIC_LOG)
        table = ManifestTable()

        diagnostics = ManifestResolver(BASE).resolve(graph, table)

        manifest = Path("/fuchsia/src/bar/meta/bar.cmx")
        assert diagnostics == []
        assert table.get("foo/bar") == manifest
        assert table.get("foo/baz") == manifest
        assert table.identifier_for(manifest) == "foo/bar"

    def test_skips_unnamed_packages(self):
        graph = BuildGraph(
            component_to_packages={"src/bar:bar": ["src/bar:anonymous"]},
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
        )
        table = ManifestTable()

        diagnostics = ManifestResolver(BASE).resolve(graph, table)

        assert len(table) == 0
        assert [d.kind for d in diagnostics] == [IndexErrorKind.UNRESOLVED_ASSOCIATION]
        assert not diagnostics[0].fatal

    def test_missing_manifest_without_heuristics(self):
        graph = BuildGraph(
            component_to_packages={"src/bar:test_bar": ["src/bar:foo"]},
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
            package_names={"src/bar:foo": "foo"},
        )
        table = ManifestTable()

        diagnostics = ManifestResolver(BASE).resolve(graph, table)

        assert "foo/bar" not in table
        assert "1 had no known manifest" in diagnostics[0].message

    def test_test_prefix_heuristic(self, heuristics_config):
        graph = BuildGraph(
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
        )

        key, record = ManifestResolver(BASE, heuristics_config).lookup_manifest(
            graph, "src/bar:test_bar"
        )

        assert key == "src/bar:bar"
        assert record.component_name == "bar"

    def test_component_suffix_heuristic(self, heuristics_config):
        graph = BuildGraph(
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
        )

        key, record = ManifestResolver(BASE, heuristics_config).lookup_manifest(
            graph, "src/bar:bar_component"
        )

        assert key == "src/bar:bar"
        assert record is not None

    def test_heuristics_chain(self, heuristics_config):
        graph = BuildGraph(
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
        )

        key, record = ManifestResolver(BASE, heuristics_config).lookup_manifest(
            graph, "src/bar:test_bar_component"
        )

        assert key == "src/bar:bar"
        assert record is not None

    def test_failed_heuristics_keep_rewritten_key(self, heuristics_config):
        key, record = ManifestResolver(BASE, heuristics_config).lookup_manifest(
            BuildGraph(), "src/bar:test_bar_component"
        )

        assert key == "src/bar:bar"
        assert record is None

    def test_heuristics_disabled(self):
        graph = BuildGraph(
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
        )

        key, record = ManifestResolver(BASE).lookup_manifest(graph, "src/bar:test_bar")

        assert key == "src/bar:test_bar"
        assert record is None

    def test_sub_components_follow_rewritten_key(self, heuristics_config):
        graph = BuildGraph(
            component_to_packages={"src/bar:test_bar": ["src/bar:foo"]},
            component_manifests={"src/bar:bar": _record("src/bar:bar", "bar", "bar.cmx")},
            component_to_sub_components={"src/bar:bar": ["baz"]},
            package_names={"src/bar:foo": "foo"},
        )
        table = ManifestTable()

        ManifestResolver(BASE, heuristics_config).resolve(graph, table)

        assert table.get("foo/bar") == Path("/fuchsia/bar.cmx")
        assert table.get("foo/baz") == Path("/fuchsia/bar.cmx")

    def test_component_name_alias(self, heuristics_config):
        graph = BuildGraph(
            component_to_packages={"src/bar:bar": ["src/bar:foo"]},
            component_manifests={
                "src/bar:bar": _record(
                    "src/bar:bar", "bar_component_generated_manifest", "gen/bar.cmx"
                )
            },
            package_names={"src/bar:foo": "foo"},
        )
        table = ManifestTable()

        ManifestResolver(BASE, heuristics_config).resolve(graph, table)

        manifest = Path("/fuchsia/gen/bar.cmx")
        assert table.get("foo/bar_component_generated_manifest") == manifest
        assert table.get("foo/bar") == manifest
        assert table.identifier_for(manifest) == "foo/bar_component_generated_manifest"

    def test_no_alias_without_heuristics(self):
        graph = BuildGraph(
            component_to_packages={"src/bar:bar": ["src/bar:foo"]},
            component_manifests={
                "src/bar:bar": _record("src/bar:bar", "bar_component", "bar.cmx")
            },
            package_names={"src/bar:foo": "foo"},
        )
        table = ManifestTable()

        ManifestResolver(BASE).resolve(graph, table)

        assert "foo/bar_component" in table
        assert "foo/bar" not in table


# =============================================================================
# build_manifest_table
# =============================================================================


class TestBuildManifestTable:
    """Tests for build_manifest_table."""

    def test_success(self, checkout, caplog):
        caplog.set_level(logging.INFO, logger="fuchsiaware.build_graph")

        result, table = build_manifest_table(checkout)

        assert result.success
        assert result.errors == []
        assert table.get("foo/bar") == checkout / "src/bar/meta/bar.cmx"
        assert "component manifest links are loaded" in caplog.text

    def test_missing_log(self, tmp_path):
        result, table = build_manifest_table(tmp_path)

        assert not result.success
        assert table is None
        assert [d.kind for d in result.errors] == [IndexErrorKind.SOURCE_UNAVAILABLE]
        assert "fx set" in result.errors[0].message

    def test_custom_build_dir(self, make_checkout):
        root = make_checkout(BASIC_LOG, build_dir="out/x64")

        result, table = build_manifest_table(root, LinkIndexConfig(build_dir="out/x64"))

        assert result.success
        assert "foo/bar" in table

    def test_format_mismatch(self, make_checkout):
        root = make_checkout([VALIDATE_BAR, PM_FOO])

        result, table = build_manifest_table(root)

        assert not result.success
        assert table is None
        assert [d.kind for d in result.errors] == [IndexErrorKind.FORMAT_MISMATCH]

    def test_undecodable_bytes_are_replaced(self, make_checkout):
        root = make_checkout(BASIC_LOG)
        ninja_path = root / "out/default/toolchain.ninja"
        ninja_path.write_bytes(b"# \xff\xfe\n" + ninja_path.read_bytes())

        result, table = build_manifest_table(root)

        assert result.success
        assert "foo/bar" in table
