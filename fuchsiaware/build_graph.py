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

"""Package/component/manifest associations from the ninja dependency log.

Nothing in the source tree states which manifest defines which component of
which package. The association is only implied by GN's build rule naming, so
it is reconstructed in two steps:

1. ``BuildGraphIndexer`` streams the dependency log once and collects four
   maps: component target -> package targets, component target -> (name,
   manifest), component target -> sub-component targets, and package target
   -> package name.
2. ``ManifestResolver`` joins the maps into ``package/component`` ->
   manifest links, with optional suffix-stripping heuristics.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import ManifestTable
from fuchsiaware.matchers import PATTERN_DESCRIPTIONS, match_statement
from fuchsiaware.ninja import iter_statements
from fuchsiaware.protocol import (
    ComponentManifestRecord,
    CompileCommand,
    IndexDiagnostic,
    IndexErrorKind,
    IndexResult,
    MatchKind,
    PackageAssembly,
    PackageNaming,
    SubComponents,
    ValidationCommand,
)

logger = logging.getLogger(__name__)

# Each group must match at least once or the log format is not understood.
CRITICAL_MATCH_GROUPS: List[Tuple[str, Tuple[MatchKind, ...]]] = [
    ("package assembly", (MatchKind.PACKAGE_ASSEMBLY,)),
    ("component manifest", (MatchKind.VALIDATION_COMMAND, MatchKind.COMPILE_COMMAND)),
    ("package naming", (MatchKind.PACKAGE_NAMING,)),
]

_TEST_TARGET_INFIX = re.compile(r":test_")
_COMPONENT_TARGET_SUFFIX = re.compile(r"_component$")
_COMPONENT_NAME_SUFFIX = re.compile(r"_component(_generated_manifest)?$")


@dataclass
class BuildGraph:
    """Partial knowledge of the target graph collected from one log pass."""

    component_to_packages: Dict[str, List[str]] = field(default_factory=dict)
    component_manifests: Dict[str, ComponentManifestRecord] = field(default_factory=dict)
    component_to_sub_components: Dict[str, List[str]] = field(default_factory=dict)
    package_names: Dict[str, str] = field(default_factory=dict)
    matched_kinds: Set[MatchKind] = field(default_factory=set)
    diagnostics: List[IndexDiagnostic] = field(default_factory=list)

    def missing_groups(self) -> List[Tuple[str, Tuple[MatchKind, ...]]]:
        """Critical statement groups that never matched, in report order."""
        return [
            (name, kinds)
            for name, kinds in CRITICAL_MATCH_GROUPS
            if not any(kind in self.matched_kinds for kind in kinds)
        ]


class BuildGraphIndexer:
    """Single-pass collector of build graph maps."""

    def __init__(self, config: Optional[LinkIndexConfig] = None, source_name: str = "<stream>"):
        """Initialize the indexer.

        Args:
            config: Link index configuration (or None for defaults)
            source_name: Name of the dependency log, used in log messages
        """
        self.config = config or LinkIndexConfig()
        self.source_name = source_name

    def index_lines(self, lines: Iterable[str]) -> BuildGraph:
        """Collect the build graph maps from raw dependency-log lines.

        Args:
            lines: Physical lines of the log; consumed once, lazily

        Returns:
            BuildGraph with every matched association
        """
        graph = BuildGraph()
        for statement in iter_statements(lines):
            matched = match_statement(statement)
            if matched is None:
                continue
            kind, result = matched
            if isinstance(result, PackageAssembly):
                self._add_package_assembly(graph, result)
            elif isinstance(result, SubComponents):
                self._add_sub_components(graph, result)
            elif isinstance(result, (ValidationCommand, CompileCommand)):
                self._add_component_manifest(graph, kind, result.to_record(self.config.build_dir))
            elif isinstance(result, PackageNaming):
                self._add_package_name(graph, result)
        return graph

    def check(self, graph: BuildGraph) -> List[IndexDiagnostic]:
        """Report each critical statement group that never matched."""
        diagnostics = []
        for name, kinds in graph.missing_groups():
            patterns = "\n".join(
                f"  {kind.value} = {PATTERN_DESCRIPTIONS[kind][1].pattern}" for kind in kinds
            )
            descriptions = " or ".join(PATTERN_DESCRIPTIONS[kind][0] for kind in kinds)
            message = (
                f"The ninja build file '{self.source_name}' did not contain any lines matching "
                f"the expected pattern to identify {name} in {descriptions}:\n\n{patterns}\n"
            )
            logger.error(message)
            diagnostics.append(IndexDiagnostic(IndexErrorKind.FORMAT_MISMATCH, message, fatal=True))
        return diagnostics

    def _first_match(self, graph: BuildGraph, kind: MatchKind) -> bool:
        if kind in graph.matched_kinds:
            return False
        graph.matched_kinds.add(kind)
        return True

    def _add_package_assembly(self, graph: BuildGraph, result: PackageAssembly) -> None:
        package_target_path = result.package_target_path
        component_target_paths = result.component_target_paths()
        if self._first_match(graph, MatchKind.PACKAGE_ASSEMBLY) and component_target_paths:
            logger.debug(
                f"Associating packages to components based on build dependencies in "
                f"{self.source_name}, for example, package '{result.package_target}' will "
                f"include at least the component built from ninja target "
                f"'{component_target_paths[0]}'."
            )
        for component_target_path in component_target_paths:
            graph.component_to_packages.setdefault(component_target_path, []).append(
                package_target_path
            )

    def _add_sub_components(self, graph: BuildGraph, result: SubComponents) -> None:
        component_target_path = result.component_target_path
        if self._first_match(graph, MatchKind.SUB_COMPONENTS) and result.sub_component_targets:
            logger.debug(
                f"Associating sub-components to components based on build dependencies in "
                f"{self.source_name}, for example, '{component_target_path}' will include at "
                f"least the component built from ninja target "
                f"'{result.sub_component_targets[0]}'."
            )
        for sub_component_target in result.sub_component_targets:
            graph.component_to_sub_components.setdefault(component_target_path, []).append(
                sub_component_target
            )

    def _add_component_manifest(
        self, graph: BuildGraph, kind: MatchKind, record: ComponentManifestRecord
    ) -> None:
        if self._first_match(graph, kind):
            logger.debug(
                f"Matching components to manifests based on build commands in "
                f"{self.source_name}, for example, '{record.manifest_path}' is the manifest "
                f"source for a component to be named '{record.component_name}', and built via "
                f"ninja target '{record.component_target_path}'."
            )

        # Last write wins; differing duplicates are only reported when debugging.
        if logger.isEnabledFor(logging.DEBUG):
            existing = graph.component_manifests.get(record.component_target_path)
            if existing is not None and existing != record:
                message = (
                    f"componentTargetPath '{record.component_target_path}' has duplicate "
                    f"entries: ({existing.component_name}, {existing.manifest_path}) != "
                    f"({record.component_name}, {record.manifest_path})"
                )
                logger.debug(f"WARNING (debug-only check): {message}")
                graph.diagnostics.append(
                    IndexDiagnostic(IndexErrorKind.DUPLICATE_ASSOCIATION, message)
                )

        graph.component_manifests[record.component_target_path] = record

    def _add_package_name(self, graph: BuildGraph, result: PackageNaming) -> None:
        record = result.to_record()
        if self._first_match(graph, MatchKind.PACKAGE_NAMING):
            logger.debug(
                f"Matching package targets to package names based on build commands in "
                f"{self.source_name}, for example, '{record.package_target_path}' is the build "
                f"target for a package to be named '{record.package_name}'."
            )
        graph.package_names[record.package_target_path] = record.package_name


class ManifestResolver:
    """Join the build graph maps into identifier -> manifest links."""

    def __init__(self, base_path: Path, config: Optional[LinkIndexConfig] = None):
        """Initialize the resolver.

        Args:
            base_path: Repository root; manifest paths are resolved against it
            config: Link index configuration (or None for defaults)
        """
        self.base_path = Path(base_path)
        self.config = config or LinkIndexConfig()

    def manifest_location(self, manifest_path: str) -> Path:
        """Absolute, normalized location of a repository-relative manifest path."""
        return Path(os.path.normpath(self.base_path / manifest_path))

    def lookup_manifest(
        self, graph: BuildGraph, component_target_path: str
    ) -> Tuple[str, Optional[ComponentManifestRecord]]:
        """Find the manifest record for a component target.

        With heuristics enabled, a miss is retried with ``:test_`` collapsed
        to ``:`` and then with a trailing ``_component`` removed. Each retry
        replaces the working key, and the final key is returned along with
        the record so sub-components are looked up under it.

        Returns:
            (working key, record or None)
        """
        record = graph.component_manifests.get(component_target_path)
        if record is not None or not self.config.use_heuristics_to_find_more_links:
            return component_target_path, record

        for pattern, replacement in (
            (_TEST_TARGET_INFIX, ":"),
            (_COMPONENT_TARGET_SUFFIX, ""),
        ):
            if record is not None:
                break
            candidate = pattern.sub(replacement, component_target_path, count=1)
            if candidate != component_target_path:
                component_target_path = candidate
                record = graph.component_manifests.get(candidate)
        return component_target_path, record

    def resolve(self, graph: BuildGraph, table: ManifestTable) -> List[IndexDiagnostic]:
        """Register every resolvable association into ``table``.

        Pairs without a named package or without a known manifest are skipped.

        Returns:
            Non-fatal diagnostics describing skipped associations
        """
        unnamed_packages = 0
        missing_manifests = 0
        links = 0

        for component_target_path, package_target_paths in graph.component_to_packages.items():
            working_key = component_target_path
            for package_target_path in package_target_paths:
                package_name = graph.package_names.get(package_target_path)
                if not package_name:
                    unnamed_packages += 1
                    continue

                working_key, record = self.lookup_manifest(graph, working_key)
                if record is None:
                    missing_manifests += 1
                    continue

                manifest = self.manifest_location(record.manifest_path)
                table.add_link(package_name, record.component_name, manifest)
                links += 1

                for sub_component_target in graph.component_to_sub_components.get(
                    working_key, []
                ):
                    table.add_link(package_name, sub_component_target, manifest, alias=True)

                if self.config.use_heuristics_to_find_more_links:
                    short_name = _COMPONENT_NAME_SUFFIX.sub("", record.component_name)
                    if short_name != record.component_name:
                        table.add_link(package_name, short_name, manifest, alias=True)

        logger.debug(
            f"Resolved {links} component links; skipped {unnamed_packages} without a package "
            f"name and {missing_manifests} without a manifest."
        )

        diagnostics = []
        if unnamed_packages or missing_manifests:
            diagnostics.append(
                IndexDiagnostic(
                    IndexErrorKind.UNRESOLVED_ASSOCIATION,
                    f"{unnamed_packages} component targets had no named package and "
                    f"{missing_manifests} had no known manifest",
                )
            )
        return diagnostics


def build_manifest_table(
    base_path: Path, config: Optional[LinkIndexConfig] = None
) -> Tuple[IndexResult, Optional[ManifestTable]]:
    """Index the dependency log under ``base_path`` into a new manifest table.

    Args:
        base_path: Repository root
        config: Link index configuration (or None for defaults)

    Returns:
        (result, table); table is None unless the result is successful
    """
    config = config or LinkIndexConfig()
    base_path = Path(base_path)
    ninja_path = base_path / config.build_dir / config.ninja_file
    indexer = BuildGraphIndexer(config, source_name=str(ninja_path))

    try:
        with open(ninja_path, "r", encoding="utf-8", errors="replace") as stream:
            graph = indexer.index_lines(stream)
    except OSError as e:
        message = (
            f"Error reading the build dependencies from {ninja_path}: '{e}'\n"
            "You may need to re-run `fx set ...` and then reload your editor window."
        )
        logger.error(message)
        return (
            IndexResult(False, [IndexDiagnostic(IndexErrorKind.SOURCE_UNAVAILABLE, message, True)]),
            None,
        )

    diagnostics = list(graph.diagnostics)
    errors = indexer.check(graph)
    if errors:
        return IndexResult(False, diagnostics + errors), None

    table = ManifestTable(config.normalize_word_separators)
    diagnostics.extend(ManifestResolver(base_path, config).resolve(graph, table))
    logger.info("The component manifest links are loaded.")
    return IndexResult(True, diagnostics), table
