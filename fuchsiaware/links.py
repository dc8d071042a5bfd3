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

"""Editor-neutral link providers.

Turns index lookups into the link and reference results an editor host
displays. The host only has to convert these records to its own types.
"""

import bisect
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import LinkIndex, find_component_urls
from fuchsiaware.protocol import Position, Range, ReferenceLocation

OPEN_MANIFEST_TOOLTIP = "Open component manifest"
MANIFEST_NOT_FOUND_TOOLTIP = "Manifest not found!"

MANIFEST_EXTENSIONS = {".cml", ".cmx"}
# Language id of virtual, unsaved manifest documents.
UNTITLED_MANIFEST_LANGUAGE_ID = "untitled-fuchsia-manifest"


@dataclass(frozen=True)
class DocumentLink:
    """A component URL in a document linked to its manifest."""

    range: Range
    target: Path


@dataclass(frozen=True)
class TerminalLink:
    """A component URL in one line of terminal output."""

    start_index: int
    length: int
    tooltip: str
    target: Optional[Path] = None


class _LineIndex:
    """Offset to (line, character) conversion for one text."""

    def __init__(self, text: str):
        self._line_starts = [0]
        for i, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(i + 1)

    def position_at(self, offset: int) -> Position:
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])


def provide_document_links(index: LinkIndex, text: str) -> List[DocumentLink]:
    """Link every resolvable component URL in a document.

    Args:
        index: Published link index
        text: Full document text

    Returns:
        One DocumentLink per URL whose identifier resolves
    """
    lines = _LineIndex(text)
    links = []
    for component_url in find_component_urls(text):
        target = index.resolve(component_url.identifier)
        if target is None:
            continue
        links.append(
            DocumentLink(
                range=Range(
                    lines.position_at(component_url.start), lines.position_at(component_url.end)
                ),
                target=target,
            )
        )
    return links


def provide_terminal_links(
    index: LinkIndex, line: str, config: Optional[LinkIndexConfig] = None
) -> List[TerminalLink]:
    """Link component URLs in one line of terminal output.

    Unresolved URLs are only linked when ``show_unresolved_links`` is set.
    """
    config = config or LinkIndexConfig()
    links = []
    for component_url in find_component_urls(line):
        target = index.resolve(component_url.identifier)
        if target is not None:
            tooltip = OPEN_MANIFEST_TOOLTIP
        elif config.show_unresolved_links:
            tooltip = MANIFEST_NOT_FOUND_TOOLTIP
        else:
            continue
        links.append(
            TerminalLink(
                start_index=component_url.start,
                length=len(component_url.url),
                tooltip=tooltip,
                target=target,
            )
        )
    return links


def provide_references(
    index: LinkIndex, document_path: Path, language_id: Optional[str] = None
) -> Optional[List[ReferenceLocation]]:
    """Find references to the component defined by a manifest document.

    Only manifest documents (``.cml``/``.cmx``, or an untitled manifest by
    language id) are answered.
    """
    document_path = Path(document_path)
    if (
        language_id != UNTITLED_MANIFEST_LANGUAGE_ID
        and document_path.suffix not in MANIFEST_EXTENSIONS
    ):
        return None
    return index.references_for(document_path)
