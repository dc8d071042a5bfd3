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

"""End-to-end scenarios: dependency log + search output -> queries."""

import asyncio
from unittest.mock import AsyncMock, patch

from fuchsiaware.config import LinkIndexConfig
from fuchsiaware.manager import LinkIndexManager
from fuchsiaware.protocol import IndexErrorKind
from fuchsiaware.references import ReferenceScanner, SearchOutput

from conftest import BUILD_CMX_BAR, META_FAR_FOO, PM_FOO, VALIDATE_BAR

URL = "fuchsia-pkg://fuchsia.com/foo#meta/bar.cmx"
SEARCH_OUTPUT = f"src/main.cml:12:    {URL} ...\n"


def _initialize(root, config=None, search_output=SEARCH_OUTPUT):
    manager = LinkIndexManager(str(root), config)
    with patch.object(
        ReferenceScanner,
        "run_search",
        AsyncMock(return_value=(SearchOutput(0, search_output), None)),
    ):
        success = asyncio.run(manager.initialize())
    return manager, success


class TestScenarios:
    """Indexing a checkout and querying it."""

    def test_package_component_resolves_to_manifest(self, make_checkout):
        root = make_checkout([PM_FOO, META_FAR_FOO, VALIDATE_BAR])

        manager, success = _initialize(root)

        assert success
        assert manager.resolve("foo/bar") == root.resolve() / "src/bar/meta/bar.cmx"

    def test_sub_component_shares_manifest(self, make_checkout):
        root = make_checkout([PM_FOO, META_FAR_FOO, VALIDATE_BAR, BUILD_CMX_BAR])

        manager, _ = _initialize(root)

        assert manager.resolve("foo/baz") is not None
        assert manager.resolve("foo/baz") == manager.resolve("foo/bar")

    def test_references_for_manifest(self, make_checkout):
        root = make_checkout([PM_FOO, META_FAR_FOO, VALIDATE_BAR])

        manager, _ = _initialize(root)

        (location,) = manager.references_for("src/bar/meta/bar.cmx")
        assert location.source_path == root.resolve() / "src/main.cml"
        assert location.line == 11
        assert location.column == 4
        assert location.length == len(URL)
        line_text = SEARCH_OUTPUT.split(":", 2)[2]
        assert line_text[location.column : location.column + location.length] == URL

    def test_missing_assembly_is_a_format_mismatch(self, make_checkout):
        root = make_checkout([PM_FOO, VALIDATE_BAR, BUILD_CMX_BAR])

        manager, success = _initialize(root)

        assert not success
        assert IndexErrorKind.FORMAT_MISMATCH in [d.kind for d in manager.diagnostics]
        assert manager.resolve("foo/bar") is None
        assert manager.resolve("foo/baz") is None

    def test_normalized_identifiers_resolve(self, make_checkout):
        lines = [
            PM_FOO.replace("-n foo ", "-n my-pkg "),
            META_FAR_FOO.replace("obj/src/bar/bar.stamp", "obj/src/bar/my-comp.stamp"),
            VALIDATE_BAR.replace("meta/bar.cmx", "meta/my-comp.cmx").replace(
                "$:bar_cmc_validate_references", "$:my-comp_cmc_validate_references"
            ),
        ]
        root = make_checkout(lines)

        manager, _ = _initialize(root, LinkIndexConfig(normalize_word_separators=True))

        manifest = manager.resolve("my-pkg/my-comp")
        assert manifest == root.resolve() / "src/bar/meta/my-comp.cmx"
        assert manager.resolve("my_pkg/my_comp") == manifest
