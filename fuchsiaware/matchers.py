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

"""Statement matchers for the ninja dependency log.

Each matcher takes one logical statement and returns a typed result, or None
when the statement does not have the matcher's shape. Matchers are pure and
independent; ``match_statement`` tries them in a fixed priority order and
returns the first hit.

Recognized shapes (abbreviated):

    build obj/<dir>/<pkg>/meta.far <outputs>: <rule> <inputs> | <deps>
    build obj/<dir>/<component>.cmx <outputs>: <rule> <inputs> | <deps>
    command = ... host_x64/cmc ... validate-references ...
        --component-manifest ../../<path>/<name>.cmx ... --gn-label //<dir>$:<target>
    command = ... /cmc compile ../../<path>.cml --output obj/.../<name>.cm ...
        --depfile obj/<dir>/<target>.d
    command = ... /pm -o obj/<dir>/<target> ... -n <package_name> ...

These patterns follow GN's naming conventions and break when the build rules
change; a statement matching none of them is simply ignored.
"""

import re
from typing import Callable, List, Optional, Tuple

from fuchsiaware.protocol import (
    CompileCommand,
    MatchKind,
    MatchResult,
    PackageAssembly,
    PackageNaming,
    SubComponents,
    ValidationCommand,
)

# Generic target name GN gives a package's only component; reconstructed as
# "<package>_component".
PLACEHOLDER_COMPONENT_TARGET = "component"

# Trailer shared by the two ``build`` statement shapes: the remaining outputs,
# the rule name, the explicit inputs and, after ``|``, the implicit
# dependencies.
_BUILD_TRAILER = (
    r"\s*(?P<other_outputs>[^:]*)\s*:"
    r"\s*(?P<rule>\S+)"
    r"\s*(?P<inputs>[^|]+)\|"
    r"(?P<dependencies>.*)"
)

META_FAR_PATTERN = re.compile(
    r"^\s*build\s*obj/(?P<target_build_dir>[^.]+?)/(?P<package_target>[-\w]+)/meta\.far"
    + _BUILD_TRAILER,
    re.DOTALL,
)

BUILD_MANIFEST_PATTERN = re.compile(
    r"^\s*build\s*obj/(?P<manifest_path>(?P<target_build_dir>[^.]+?)/"
    r"(?P<component_target>[-\w]+)\.cm[xl])"
    + _BUILD_TRAILER,
    re.DOTALL,
)

CMC_VALIDATE_PATTERN = re.compile(
    r"^\s*command\s*=.*?host_\w+/cmc\s"
    # Only present when the stamp names the destination manifest.
    r"(?:.*?--stamp\s+\S*?_validate_manifests_(?P<dest_component_manifest>[-\w.]+?)?"
    r"\.action\.stamp\b)?"
    r".*?\svalidate-references"
    r".*?--component-manifest\s+(?P<path_root>\.\./\.\.|obj)/"
    r"(?P<manifest_path>\S*/(?P<fallback_component_name>[^/.]+)\.cm[xl]?)"
    r".*?--gn-label\s+//(?P<target_build_dir>[^$]+)\$:"
    r"(?P<fallback_component_target>[-\w]+)?\b",
    re.DOTALL,
)

CMC_COMPILE_PATTERN = re.compile(
    r"^\s*command\s*=.*?/cmc\s+compile"
    r"\s+\.\./\.\./(?P<manifest_path>[^.]+\.cml)"
    r"\s+--output\s+obj/\S+/(?P<component_name>[^/.]+)\.cm\s"
    r".*--depfile\s+obj/(?P<target_build_dir>\S+)/(?P<component_target>[^/.]+)(?:\.cm)?\.d",
    re.DOTALL,
)

PM_BUILD_PATTERN = re.compile(
    r"^\s*command\s*=.*?/pm"
    r"\s+-o\s+obj/(?P<target_build_dir>\S+)/(?P<package_target>\S+)\s"
    r".*?-n\s+(?P<package_name>[-\w]+)(?=\s|$)",
    re.DOTALL,
)

# Stamps in a meta.far dependency list that never name a component.
_NON_COMPONENT_STAMPS = (
    r"manifest\.stamp",
    r"metadata\.stamp",
    r"validate_manifests[^/]+\.stamp",
    r"\S+?_component_index\.stamp",
)

# "<package>_component_index.stamp" slips past the alternation above once the
# optional "<package>_" prefix has been consumed.
_PACKAGE_INDEX_TARGET = "component_index"

# Auxiliary stamps a manifest depends on that are not sub-components.
_AUXILIARY_STAMP_SUFFIXES = (
    "check_includes",
    "cmc_validate_references",
    "manifest_resource",
    "merge",
    "validate",
)


def _package_dependency_pattern(target_build_dir: str, package_target: str) -> "re.Pattern[str]":
    """Pattern for component stamps in the dependency list of one package.

    Three dependency shapes are recognized:
    - ``obj/<dir>/<component>.stamp`` (or ``<component>.manifest.stamp``)
    - ``obj/<dir>/<package>_component.stamp``, the placeholder target
    - ``obj/<dir>/<subdir>/<component>.stamp``, one directory down

    Paths under the package's own ``obj/<dir>/<package>.`` outputs are skipped.
    """
    build_dir = re.escape(target_build_dir)
    package = re.escape(package_target)
    ignored = "|".join(f"(?:{stamp})" for stamp in _NON_COMPONENT_STAMPS)
    return re.compile(
        rf"\s*obj/{build_dir}(?!/{package}\.)/"
        rf"(?:(?:(?P<component_target_prefix>{package})_)?|(?P<component_build_subdir>[^./]+))/?"
        rf"(?:{ignored}|(?P<component_target>[^/]+?)(?:\.manifest)?\.stamp)"
    )


def _sub_component_pattern(target_build_dir: str, component_target: str) -> "re.Pattern[str]":
    """Pattern for sibling stamps a manifest build statement depends on."""
    build_dir = re.escape(target_build_dir)
    component = re.escape(component_target)
    auxiliary = "|".join(f"(?:{component}_{suffix})" for suffix in _AUXILIARY_STAMP_SUFFIXES)
    return re.compile(
        rf"\s*obj/{build_dir}/(?:{auxiliary}|(?P<sub_component_target>[-\w]+))\.stamp"
    )


def match_package_assembly(statement: str) -> Optional[PackageAssembly]:
    """Match a ``build .../meta.far`` statement and collect its components.

    Args:
        statement: One logical dependency-log statement

    Returns:
        PackageAssembly, or None if the statement is not a package assembly
    """
    match = META_FAR_PATTERN.match(statement)
    if not match:
        return None

    target_build_dir = match.group("target_build_dir")
    package_target = match.group("package_target")
    dependency_pattern = _package_dependency_pattern(target_build_dir, package_target)

    component_targets: List[str] = []
    for dep in dependency_pattern.finditer(match.group("dependencies")):
        prefix = dep.group("component_target_prefix")
        build_subdir = dep.group("component_build_subdir")
        component_target = dep.group("component_target")
        if not component_target:
            continue
        if prefix and component_target == _PACKAGE_INDEX_TARGET:
            continue
        if component_target == PLACEHOLDER_COMPONENT_TARGET and prefix:
            component_target = f"{prefix}_{component_target}"
        if build_subdir:
            component_targets.append(f"{build_subdir}/{component_target}")
        else:
            component_targets.append(component_target)

    return PackageAssembly(
        target_build_dir=target_build_dir,
        package_target=package_target,
        component_targets=tuple(component_targets),
    )


def match_sub_components(statement: str) -> Optional[SubComponents]:
    """Match a ``build <component>.cm[xl]`` statement and list its sub-components."""
    match = BUILD_MANIFEST_PATTERN.match(statement)
    if not match:
        return None

    target_build_dir = match.group("target_build_dir")
    component_target = match.group("component_target")
    dependency_pattern = _sub_component_pattern(target_build_dir, component_target)

    sub_component_targets = tuple(
        dep.group("sub_component_target")
        for dep in dependency_pattern.finditer(match.group("dependencies"))
        if dep.group("sub_component_target")
    )

    return SubComponents(
        manifest_path=match.group("manifest_path"),
        target_build_dir=target_build_dir,
        component_target=component_target,
        sub_component_targets=sub_component_targets,
    )


def match_validation_command(statement: str) -> Optional[ValidationCommand]:
    """Match a ``cmc validate-references`` command.

    Statements carrying neither a destination manifest in the stamp nor a
    target name in the GN label cannot be keyed and do not match.
    """
    match = CMC_VALIDATE_PATTERN.match(statement)
    if not match:
        return None

    dest_component_manifest = match.group("dest_component_manifest")
    fallback_component_target = match.group("fallback_component_target")
    if not dest_component_manifest and not fallback_component_target:
        return None

    return ValidationCommand(
        path_root=match.group("path_root"),
        manifest_path=match.group("manifest_path"),
        fallback_component_name=match.group("fallback_component_name"),
        target_build_dir=match.group("target_build_dir"),
        fallback_component_target=fallback_component_target,
        dest_component_manifest=dest_component_manifest,
    )


def match_compile_command(statement: str) -> Optional[CompileCommand]:
    """Match a ``cmc compile`` command for a ``.cml`` manifest."""
    match = CMC_COMPILE_PATTERN.match(statement)
    if not match:
        return None
    return CompileCommand(
        manifest_path=match.group("manifest_path"),
        component_name=match.group("component_name"),
        target_build_dir=match.group("target_build_dir"),
        component_target=match.group("component_target"),
    )


def match_package_naming(statement: str) -> Optional[PackageNaming]:
    """Match a ``pm`` packaging command carrying ``-n <package_name>``."""
    match = PM_BUILD_PATTERN.match(statement)
    if not match:
        return None
    return PackageNaming(
        target_build_dir=match.group("target_build_dir"),
        package_target=match.group("package_target"),
        package_name=match.group("package_name"),
    )


Matcher = Callable[[str], Optional[MatchResult]]

# Priority order; the first matcher returning a result wins.
MATCHERS: List[Tuple[MatchKind, Matcher]] = [
    (MatchKind.PACKAGE_ASSEMBLY, match_package_assembly),
    (MatchKind.SUB_COMPONENTS, match_sub_components),
    (MatchKind.VALIDATION_COMMAND, match_validation_command),
    (MatchKind.COMPILE_COMMAND, match_compile_command),
    (MatchKind.PACKAGE_NAMING, match_package_naming),
]

# Patterns reported when a critical statement shape never matches.
PATTERN_DESCRIPTIONS = {
    MatchKind.PACKAGE_ASSEMBLY: ("a 'build meta.far' statement", META_FAR_PATTERN),
    MatchKind.VALIDATION_COMMAND: ("a 'validate .cmx manifest' command", CMC_VALIDATE_PATTERN),
    MatchKind.COMPILE_COMMAND: ("a 'compile .cml manifest' command", CMC_COMPILE_PATTERN),
    MatchKind.PACKAGE_NAMING: ("a 'build package' command", PM_BUILD_PATTERN),
}


def match_statement(statement: str) -> Optional[Tuple[MatchKind, MatchResult]]:
    """Run the matchers in priority order.

    Args:
        statement: One logical dependency-log statement

    Returns:
        (kind, result) for the first matcher that fires, or None
    """
    for kind, matcher in MATCHERS:
        result = matcher(statement)
        if result is not None:
            return kind, result
    return None
