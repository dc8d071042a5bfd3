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

"""Component manifest links for Fuchsia checkouts.

Builds a bidirectional index between component identifiers
(``package/component``, as embedded in ``fuchsia-pkg://`` URLs) and the
manifest files that define them:

- The build dependency log (``toolchain.ninja``) is parsed to recover which
  manifest defines which component of which package.
- A repository-wide ``git grep`` finds every place a component URL is used.

Package Structure:
    protocol.py     - Records, matcher results and diagnostics
    matchers.py     - Dependency-log statement matchers
    ninja.py        - Streaming dependency-log reader
    build_graph.py  - Build graph indexer and manifest resolver
    references.py   - Repository reference scanner
    index.py        - Link index tables and query facade
    manager.py      - Concurrent initialization and publishing
    links.py        - Editor-neutral link providers
    config.py       - Configuration

Usage:
    from fuchsiaware import LinkIndexConfig, LinkIndexManager

    manager = LinkIndexManager("/path/to/fuchsia", LinkIndexConfig())
    if await manager.initialize():
        manifest = manager.resolve("my-package/my-component")
"""

from fuchsiaware.build_graph import (
    BuildGraph,
    BuildGraphIndexer,
    ManifestResolver,
    build_manifest_table,
)
from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.index import (
    LinkIndex,
    ManifestTable,
    ReferenceTable,
    find_component_urls,
    identifier_at,
)
from fuchsiaware.links import (
    DocumentLink,
    TerminalLink,
    provide_document_links,
    provide_references,
    provide_terminal_links,
)
from fuchsiaware.manager import LinkIndexManager
from fuchsiaware.matchers import MATCHERS, match_statement
from fuchsiaware.protocol import (
    ComponentManifestRecord,
    ComponentUrl,
    IndexDiagnostic,
    IndexErrorKind,
    IndexResult,
    MatchKind,
    PackageRecord,
    ReferenceLocation,
    normalize_identifier,
)
from fuchsiaware.references import ReferenceScanner

__all__ = [
    # Build graph
    "BuildGraph",
    "BuildGraphIndexer",
    "ManifestResolver",
    "build_manifest_table",
    "MATCHERS",
    "match_statement",
    # References
    "ReferenceScanner",
    # Index
    "LinkIndex",
    "ManifestTable",
    "ReferenceTable",
    "find_component_urls",
    "identifier_at",
    "LinkIndexManager",
    "LinkIndexConfig",
    # Providers
    "DocumentLink",
    "TerminalLink",
    "provide_document_links",
    "provide_references",
    "provide_terminal_links",
    # Types
    "ComponentManifestRecord",
    "ComponentUrl",
    "IndexDiagnostic",
    "IndexErrorKind",
    "IndexResult",
    "MatchKind",
    "PackageRecord",
    "ReferenceLocation",
    "normalize_identifier",
]
