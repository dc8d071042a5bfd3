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

"""Component link protocol types.

Defines the records recovered from the build dependency log, the tagged
results returned by the statement matchers, and the diagnostics reported
while building a link index.

Terminology:
- Target path: ``dir:target`` or ``dir/subdir:target``, an opaque key naming
  one build rule.
- Identifier: ``package/component``, the key embedded in component URLs.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union


def make_target_path(build_dir: str, target: str) -> str:
    """Join a build subdirectory and a target name into a target path."""
    return f"{build_dir}:{target}"


def make_identifier(package_name: str, component_name: str) -> str:
    """Build the ``package/component`` lookup key."""
    return f"{package_name}/{component_name}"


def normalize_identifier(name_or_target: str) -> str:
    """Replace every hyphen with an underscore.

    Idempotent: normalizing an already normalized value returns it unchanged.
    """
    return name_or_target.replace("-", "_")


class MatchKind(Enum):
    """Statement shapes recognized in the dependency log."""

    PACKAGE_ASSEMBLY = "package_assembly"
    SUB_COMPONENTS = "sub_components"
    VALIDATION_COMMAND = "validation_command"
    COMPILE_COMMAND = "compile_command"
    PACKAGE_NAMING = "package_naming"


class IndexErrorKind(Enum):
    """Categories of problems found while building an index."""

    SOURCE_UNAVAILABLE = "source_unavailable"  # dependency log unreadable
    FORMAT_MISMATCH = "format_mismatch"  # a critical statement shape never matched
    SEARCH_UNAVAILABLE = "search_unavailable"  # search could not run or failed
    SEARCH_EMPTY = "search_empty"  # search produced no usable line
    UNRESOLVED_ASSOCIATION = "unresolved_association"
    DUPLICATE_ASSOCIATION = "duplicate_association"


@dataclass
class IndexDiagnostic:
    """A single problem reported by an indexing pass."""

    kind: IndexErrorKind
    message: str
    fatal: bool = False

    def __str__(self) -> str:
        severity = "error" if self.fatal else "warning"
        return f"[{severity}:{self.kind.value}] {self.message}"


@dataclass
class IndexResult:
    """Outcome of one sub-initialization."""

    success: bool
    diagnostics: List[IndexDiagnostic] = field(default_factory=list)

    @property
    def errors(self) -> List[IndexDiagnostic]:
        return [d for d in self.diagnostics if d.fatal]


@dataclass(frozen=True)
class PackageRecord:
    """A package build target and the human readable package name."""

    package_target_path: str
    package_name: str


@dataclass(frozen=True)
class ComponentManifestRecord:
    """A component build target, the component name and its manifest source."""

    component_target_path: str
    component_name: str
    manifest_path: str


@dataclass(frozen=True)
class Position:
    """Zero-based line and character offset in a text document."""

    line: int
    character: int


@dataclass(frozen=True)
class Range:
    """Half-open span between two positions."""

    start: Position
    end: Position


@dataclass(frozen=True)
class ReferenceLocation:
    """One textual occurrence of a component URL in the repository."""

    source_path: Path
    line: int  # 0-based
    column: int  # 0-based
    length: int

    @property
    def range(self) -> Range:
        return Range(
            Position(self.line, self.column),
            Position(self.line, self.column + self.length),
        )

    def __str__(self) -> str:
        return f"{self.source_path}:{self.line + 1}:{self.column + 1}"


@dataclass(frozen=True)
class ComponentUrl:
    """A component URL found in a piece of text, with its offsets."""

    url: str
    package_name: str
    component_name: str
    start: int
    end: int

    @property
    def identifier(self) -> str:
        return make_identifier(self.package_name, self.component_name)


# =============================================================================
# Matcher results
# =============================================================================


@dataclass(frozen=True)
class PackageAssembly:
    """A ``build obj/<dir>/<package>/meta.far`` statement.

    ``component_targets`` holds either ``target`` or ``subdir/target`` names,
    relative to ``target_build_dir``.
    """

    target_build_dir: str
    package_target: str
    component_targets: Tuple[str, ...]

    @property
    def package_target_path(self) -> str:
        return make_target_path(self.target_build_dir, self.package_target)

    def component_target_paths(self) -> List[str]:
        """Expand each component dependency into a full target path."""
        paths = []
        for component_target in self.component_targets:
            sub_dir, _, sub_target = component_target.partition("/")
            if sub_dir and sub_target:
                paths.append(make_target_path(f"{self.target_build_dir}/{sub_dir}", sub_target))
            else:
                paths.append(make_target_path(self.target_build_dir, component_target))
        return paths


@dataclass(frozen=True)
class SubComponents:
    """A ``build obj/<dir>/<component>.cm[xl]`` statement and its sibling targets."""

    manifest_path: str
    target_build_dir: str
    component_target: str
    sub_component_targets: Tuple[str, ...]

    @property
    def component_target_path(self) -> str:
        return make_target_path(self.target_build_dir, self.component_target)


@dataclass(frozen=True)
class ValidationCommand:
    """A ``cmc validate-references`` invocation.

    When the stamp path names an explicit destination manifest it takes
    precedence over the pair derived from the manifest file name and the GN
    label.
    """

    path_root: str  # "../.." or "obj"
    manifest_path: str
    fallback_component_name: str
    target_build_dir: str
    fallback_component_target: Optional[str]
    dest_component_manifest: Optional[str] = None

    @property
    def component_target(self) -> str:
        if self.dest_component_manifest:
            return self.dest_component_manifest
        return _strip_suffix(self.fallback_component_target or "", "_cmc_validate_references")

    @property
    def component_name(self) -> str:
        if self.dest_component_manifest:
            name = self.dest_component_manifest
            for suffix in (".cmx", ".cm"):
                if name.endswith(suffix):
                    return name[: -len(suffix)]
            return name
        return self.fallback_component_name

    def source_manifest_path(self, build_dir: str) -> str:
        """Manifest path relative to the repository root.

        ``../..`` paths are relative to the source root already; ``obj`` paths
        are generated files under the build output directory.
        """
        if self.path_root == "../..":
            return self.manifest_path
        return posixpath.join(build_dir, "obj", self.manifest_path)

    def to_record(self, build_dir: str) -> ComponentManifestRecord:
        return ComponentManifestRecord(
            component_target_path=make_target_path(self.target_build_dir, self.component_target),
            component_name=self.component_name,
            manifest_path=self.source_manifest_path(build_dir),
        )


@dataclass(frozen=True)
class CompileCommand:
    """A ``cmc compile`` invocation for a ``.cml`` manifest."""

    manifest_path: str
    component_name: str
    target_build_dir: str
    component_target: str

    def to_record(self, build_dir: str) -> ComponentManifestRecord:
        return ComponentManifestRecord(
            component_target_path=make_target_path(self.target_build_dir, self.component_target),
            component_name=self.component_name,
            manifest_path=self.manifest_path,
        )


@dataclass(frozen=True)
class PackageNaming:
    """A ``pm -o obj/<dir>/<target> ... -n <name>`` invocation."""

    target_build_dir: str
    package_target: str
    package_name: str

    def to_record(self) -> PackageRecord:
        return PackageRecord(
            package_target_path=make_target_path(self.target_build_dir, self.package_target),
            package_name=self.package_name,
        )


MatchResult = Union[
    PackageAssembly,
    SubComponents,
    ValidationCommand,
    CompileCommand,
    PackageNaming,
]


def _strip_suffix(value: str, suffix: str) -> str:
    if suffix and value.endswith(suffix):
        return value[: -len(suffix)]
    return value
