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

"""Link index manager.

Owns the repository root and configuration, builds both halves of the index
concurrently and publishes the result as one immutable ``LinkIndex``.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from fuchsiaware.build_graph import build_manifest_table
from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import LinkIndex
from fuchsiaware.protocol import IndexDiagnostic, IndexResult, ReferenceLocation
from fuchsiaware.references import ReferenceScanner

logger = logging.getLogger(__name__)


class LinkIndexManager:
    """Builds, refreshes and serves a component link index.

    Usage:
        manager = LinkIndexManager("/path/to/fuchsia")
        if await manager.initialize():
            manifest = manager.resolve("my-package/my-component")
    """

    def __init__(self, base_path: Optional[str] = None, config: Optional[LinkIndexConfig] = None):
        """Initialize the manager.

        Args:
            base_path: Repository root (defaults to the current directory)
            config: Link index configuration (or None for defaults)
        """
        self._base_path = Path(base_path or Path.cwd()).resolve()
        self._config = config or LinkIndexConfig()
        self._index = self._empty_index()
        self._diagnostics: List[IndexDiagnostic] = []

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def config(self) -> LinkIndexConfig:
        return self._config

    @property
    def index(self) -> LinkIndex:
        """The currently published index."""
        return self._index

    @property
    def diagnostics(self) -> List[IndexDiagnostic]:
        """Diagnostics from the most recent initialization."""
        return list(self._diagnostics)

    def _empty_index(self) -> LinkIndex:
        return LinkIndex(
            self._base_path, normalize_word_separators=self._config.normalize_word_separators
        )

    async def initialize(self) -> bool:
        """Build a new index and publish it.

        Both passes always run to completion so their diagnostics are
        available; a failed pass publishes an empty half.

        Returns:
            True if both the manifest links and the references were built
        """
        scanner = ReferenceScanner(self._base_path, self._config)
        (links_result, manifests), (refs_result, references) = await asyncio.gather(
            asyncio.to_thread(build_manifest_table, self._base_path, self._config),
            scanner.scan(),
        )

        self._index = LinkIndex(
            self._base_path,
            manifests=manifests if links_result.success else None,
            references=references if refs_result.success else None,
            normalize_word_separators=self._config.normalize_word_separators,
        )
        self._diagnostics = links_result.diagnostics + refs_result.diagnostics

        success = links_result.success and refs_result.success
        if success:
            logger.info(f"Component link index ready: {self._index.stats()}")
        else:
            logger.error(self._failure_summary(links_result, refs_result))
        return success

    @staticmethod
    def _failure_summary(links_result: IndexResult, refs_result: IndexResult) -> str:
        failed = []
        if not links_result.success:
            failed.append("manifest links")
        if not refs_result.success:
            failed.append("references")
        return f"Component link index initialization failed for: {', '.join(failed)}"

    def dispose(self) -> None:
        """Drop the published index."""
        self._index = self._empty_index()
        self._diagnostics = []

    # Query API

    def resolve(self, identifier: str) -> Optional[Path]:
        return self._index.resolve(identifier)

    def references_for(self, manifest_path: os.PathLike) -> Optional[List[ReferenceLocation]]:
        return self._index.references_for(manifest_path)

    def identifier_at(self, text: str, offset: int) -> Optional[Tuple[str, Tuple[int, int]]]:
        return self._index.identifier_at(text, offset)
