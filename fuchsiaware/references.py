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

"""Repository-wide scan for component URL references.

Runs one ``git grep`` over the whole checkout (submodules included) and turns
each ``path:line:text`` hit into reference locations. ``git grep`` reports a
wrong column for the second match on a line, so columns are recomputed by
re-applying the URL pattern to the matched text.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import COMPONENT_URL_PATTERN, ReferenceTable, find_component_urls
from fuchsiaware.protocol import (
    IndexDiagnostic,
    IndexErrorKind,
    IndexResult,
    ReferenceLocation,
)

logger = logging.getLogger(__name__)

# Extended regex understood by git grep; coarser than COMPONENT_URL_PATTERN.
SEARCH_PATTERN = r"fuchsia-pkg://fuchsia.com/([^#]*)#meta/(-|\w)*\.cmx?"

GIT_GREP_ARGS: List[str] = [
    "--no-pager",
    "grep",
    "--recurse-submodules",
    "-I",
    "--extended-regexp",
    "--line-number",
    "--no-column",
    "--no-color",
    SEARCH_PATTERN,
]


@dataclass
class SearchOutput:
    """Captured result of the search process."""

    returncode: int
    stdout: str
    stderr: str = ""


def parse_search_line(line: str) -> Optional[Tuple[str, int, str]]:
    """Split one ``path:line:text`` result line.

    Returns:
        (path, 0-based line number, matched text), or None if malformed
    """
    parts = line.split(":", 2)
    if len(parts) != 3 or not parts[1].isdigit():
        return None
    path, line_number, text = parts
    return path, int(line_number) - 1, text


class ReferenceScanner:
    """Builds the reference half of a link index."""

    def __init__(self, base_path: Path, config: Optional[LinkIndexConfig] = None):
        """Initialize the scanner.

        Args:
            base_path: Repository root; the search runs from here
            config: Link index configuration (or None for defaults)
        """
        self.base_path = Path(base_path)
        self.config = config or LinkIndexConfig()

    @property
    def command(self) -> List[str]:
        return ["git", *GIT_GREP_ARGS]

    def _describe_command(self) -> str:
        return f"`{' '.join(self.command)}`\n\nfrom the '{self.base_path}' directory."

    async def run_search(self) -> Tuple[Optional[SearchOutput], Optional[IndexDiagnostic]]:
        """Run the search to completion.

        There is no timeout; a hung search blocks until it exits.

        Returns:
            (output, None) on success, or (None, diagnostic) if the search
            could not start or exited with a failure status
        """
        logger.info(
            "Searching for component URLs ('fuchsia-pkg://...cm[x]') referenced from any text "
            f"document in the repository, by running the command:\n\n  {self._describe_command()}"
        )
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.base_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            message = f"Error executing the `git grep` command: '{e}'"
            logger.error(message)
            return None, IndexDiagnostic(IndexErrorKind.SEARCH_UNAVAILABLE, message, fatal=True)

        output = SearchOutput(
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        if output.returncode != 0:
            message = (
                f"Error ({output.returncode}) executing the `git grep` command: "
                f"'{output.stderr.strip()}'"
            )
            logger.error(message)
            return None, IndexDiagnostic(IndexErrorKind.SEARCH_UNAVAILABLE, message, fatal=True)
        return output, None

    def parse_output(self, text: str) -> Tuple[IndexResult, Optional[ReferenceTable]]:
        """Build a reference table from search output.

        A first line that does not match the URL pattern is reported as a
        format mismatch warning; the scan still succeeds if later lines match.

        Args:
            text: Full stdout of the search

        Returns:
            (result, table); table is None unless at least one reference parsed
        """
        table = ReferenceTable(self.config.normalize_word_separators)
        diagnostics: List[IndexDiagnostic] = []
        found = 0
        checked_first_line = False

        for line in text.splitlines():
            if not line:
                continue
            parsed = parse_search_line(line)
            matched_line = False
            if parsed is not None:
                path, line_number, matched_text = parsed
                source_path = self.base_path / path
                for component_url in find_component_urls(matched_text):
                    matched_line = True
                    location = ReferenceLocation(
                        source_path=source_path,
                        line=line_number,
                        column=component_url.start,
                        length=len(component_url.url),
                    )
                    table.add_reference(
                        component_url.package_name, component_url.component_name, location
                    )
                    if not found:
                        logger.debug(
                            f"Getting references to manifests. For example, "
                            f"'{component_url.url}' is referenced by '{location}'"
                        )
                    found += 1
            else:
                logger.debug(f"Skipping malformed search result line: '{line}'")

            if not checked_first_line:
                checked_first_line = True
                if not matched_line:
                    message = (
                        "RegEx failed to match the first line returned from `git grep`.\n\n"
                        f"  Line: '{line}'\n"
                        f"  RegEx: {COMPONENT_URL_PATTERN.pattern}"
                    )
                    logger.warning(message)
                    diagnostics.append(IndexDiagnostic(IndexErrorKind.FORMAT_MISMATCH, message))

        if not found:
            message = (
                "No component URLs ('fuchsia-pkg://...cm[x]') were found in the repository, by "
                f"running the command:\n\n  {self._describe_command()}"
            )
            logger.error(message)
            diagnostics.append(IndexDiagnostic(IndexErrorKind.SEARCH_EMPTY, message, fatal=True))
            return IndexResult(False, diagnostics), None

        logger.info(f"The component URL references are loaded ({found} references).")
        return IndexResult(True, diagnostics), table

    async def scan(self) -> Tuple[IndexResult, Optional[ReferenceTable]]:
        """Run the search and parse its output into a new reference table."""
        output, error = await self.run_search()
        if error is not None:
            return IndexResult(False, [error]), None
        return self.parse_output(output.stdout)
