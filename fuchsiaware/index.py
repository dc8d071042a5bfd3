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

"""Bidirectional index between component identifiers and manifests.

The index has two halves built by independent passes:

- ``ManifestTable``: identifier -> manifest path, and manifest path ->
  identifier, filled from the build dependency log.
- ``ReferenceTable``: identifier -> every place a component URL naming it
  appears in the repository, filled from the repository search.

``LinkIndex`` wraps both for read-only queries. Tables are only written while
a pass runs; a refresh builds new tables and a new ``LinkIndex``.
"""

import os
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from fuchsiaware.protocol import (
    ComponentUrl,
    ReferenceLocation,
    make_identifier,
    normalize_identifier,
)

# Component URLs end in either '.cm' or '.cmx'.
COMPONENT_URL_PATTERN = re.compile(
    r"\bfuchsia-pkg://fuchsia\.com/(?P<package_name>[-\w]+)(?:\?[^#]*)?"
    r"#meta/(?P<component_name>[-\w]+)\.cmx?\b"
)


def find_component_urls(text: str) -> Iterator[ComponentUrl]:
    """Yield every component URL in ``text``, in order of appearance."""
    for match in COMPONENT_URL_PATTERN.finditer(text):
        yield ComponentUrl(
            url=match.group(0),
            package_name=match.group("package_name"),
            component_name=match.group("component_name"),
            start=match.start(),
            end=match.end(),
        )


def identifier_at(text: str, offset: int) -> Optional[Tuple[str, Tuple[int, int]]]:
    """Find the component URL spanning ``offset``.

    Works on arbitrary text and does not consult any index.

    Args:
        text: Document text
        offset: Character offset into ``text``

    Returns:
        (identifier, (start, end)) or None if no URL covers the offset
    """
    for component_url in find_component_urls(text):
        if component_url.start > offset:
            break
        if offset <= component_url.end:
            return component_url.identifier, (component_url.start, component_url.end)
    return None


def _path_key(path: Path) -> str:
    return os.path.normpath(str(path))


class ManifestTable:
    """Identifier <-> manifest associations from the build graph."""

    def __init__(self, normalize_word_separators: bool = False):
        self._normalize = normalize_word_separators
        self._identifier_to_manifest: Dict[str, Path] = {}
        self._manifest_to_identifier: Dict[str, str] = {}

    def add_link(
        self, package_name: str, component_name: str, manifest: Path, alias: bool = False
    ) -> None:
        """Register ``package/component`` as defined by ``manifest``.

        The literal identifier is always registered. With normalization
        enabled, the hyphen-free form is registered too when it differs. The
        reverse entry always records the literal identifier.

        Args:
            package_name: Package name
            component_name: Component name
            manifest: Absolute manifest path
            alias: The identifier shares another component's manifest
                (sub-components, heuristic aliases); it only claims the
                reverse entry if the manifest has none yet
        """
        identifier = make_identifier(package_name, component_name)
        self._identifier_to_manifest[identifier] = manifest
        key = _path_key(manifest)
        if not alias or key not in self._manifest_to_identifier:
            self._manifest_to_identifier[key] = identifier
        if self._normalize:
            normalized = normalize_identifier(identifier)
            if normalized != identifier:
                self._identifier_to_manifest[normalized] = manifest

    def get(self, identifier: str) -> Optional[Path]:
        return self._identifier_to_manifest.get(identifier)

    def identifier_for(self, manifest: Path) -> Optional[str]:
        return self._manifest_to_identifier.get(_path_key(manifest))

    def __len__(self) -> int:
        return len(self._identifier_to_manifest)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._identifier_to_manifest

    @property
    def manifest_count(self) -> int:
        return len(self._manifest_to_identifier)


class ReferenceTable:
    """Identifier -> ordered reference locations from the repository search."""

    def __init__(self, normalize_word_separators: bool = False):
        self._normalize = normalize_word_separators
        self._references: Dict[str, List[ReferenceLocation]] = {}

    def add_reference(
        self,
        package_name: str,
        component_name: str,
        location: ReferenceLocation,
    ) -> None:
        """Record one reference under the literal and, if enabled, normalized identifier.

        The two identifiers keep separate lists.
        """
        identifier = make_identifier(package_name, component_name)
        self._references.setdefault(identifier, []).append(location)
        if self._normalize:
            normalized = normalize_identifier(identifier)
            if normalized != identifier:
                self._references.setdefault(normalized, []).append(location)

    def get(self, identifier: str) -> Optional[List[ReferenceLocation]]:
        return self._references.get(identifier)

    def __len__(self) -> int:
        return len(self._references)

    @property
    def reference_count(self) -> int:
        return sum(len(refs) for refs in self._references.values())


class LinkIndex:
    """Read-only query facade over a manifest table and a reference table.

    Safe for concurrent readers: no query mutates state.
    """

    def __init__(
        self,
        base_path: Path,
        manifests: Optional[ManifestTable] = None,
        references: Optional[ReferenceTable] = None,
        normalize_word_separators: bool = False,
    ):
        """Initialize the index.

        Args:
            base_path: Repository root used to resolve relative manifest paths
            manifests: Published manifest half, or None for an empty half
            references: Published reference half, or None for an empty half
            normalize_word_separators: Fall back to normalized identifiers on lookup
        """
        self._base_path = Path(base_path)
        if manifests is None:
            manifests = ManifestTable(normalize_word_separators)
        if references is None:
            references = ReferenceTable(normalize_word_separators)
        self._manifests = manifests
        self._references = references
        self._normalize = normalize_word_separators

    @property
    def base_path(self) -> Path:
        return self._base_path

    def resolve(self, identifier: str) -> Optional[Path]:
        """Get the manifest defining ``package/component``.

        Args:
            identifier: ``package_name/component_name``

        Returns:
            Absolute manifest path, or None if unknown
        """
        manifest = self._manifests.get(identifier)
        if manifest is None and self._normalize:
            manifest = self._manifests.get(normalize_identifier(identifier))
        return manifest

    def references_for(self, manifest_path: os.PathLike) -> Optional[List[ReferenceLocation]]:
        """Get every reference to the component defined by a manifest.

        Args:
            manifest_path: Absolute path, or a path relative to the repository root

        Returns:
            References in search order, or None if the manifest is not indexed
            or never referenced
        """
        path = Path(manifest_path)
        if not path.is_absolute():
            path = self._base_path / path
        identifier = self._manifests.identifier_for(path)
        if identifier is None:
            return None
        references = self._references.get(identifier)
        if references is None and self._normalize:
            references = self._references.get(normalize_identifier(identifier))
        if references is None:
            return None
        return list(references)

    def identifier_for(self, manifest_path: os.PathLike) -> Optional[str]:
        """Get the literal identifier registered for a manifest."""
        path = Path(manifest_path)
        if not path.is_absolute():
            path = self._base_path / path
        return self._manifests.identifier_for(path)

    def identifier_at(self, text: str, offset: int) -> Optional[Tuple[str, Tuple[int, int]]]:
        return identifier_at(text, offset)

    def stats(self) -> Dict[str, int]:
        """Summary counts for diagnostics."""
        return {
            "identifiers": len(self._manifests),
            "manifests": self._manifests.manifest_count,
            "referenced_identifiers": len(self._references),
            "references": self._references.reference_count,
        }
