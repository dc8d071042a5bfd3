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

"""Shared fixtures: dependency-log statements and fake checkouts."""

from pathlib import Path
from typing import Callable, List

import pytest

# Package "foo" (target src/bar:foo) includes component target src/bar:bar.
META_FAR_FOO = (
    "build obj/src/bar/foo/meta.far obj/src/bar/foo/meta/contents: "
    "__src_bar_foo___rule obj/src/bar/foo_manifest | ../../host_x64/pm "
    "obj/src/bar/foo_manifest.stamp obj/src/bar/foo_metadata.stamp "
    "obj/src/bar/bar.stamp obj/src/bar/foo.manifest.stamp"
)

# Manifest build for src/bar:bar, with sub-component target "baz".
BUILD_CMX_BAR = (
    "build obj/src/bar/bar.cmx: __src_bar_bar_merge___rule ../../src/bar/meta/bar.cmx | "
    "../../host_x64/cmc obj/src/bar/bar_check_includes.stamp "
    "obj/src/bar/bar_cmc_validate_references.stamp obj/src/bar/bar_merge.stamp "
    "obj/src/bar/baz.stamp"
)

VALIDATE_BAR = (
    "  command = ../../build/gn_run_binary.sh ../../prebuilt/third_party/clang/linux-x64/bin "
    "host_x64/cmc --stamp gen/src/bar/bar_cmc_validate_references.action.stamp "
    "validate-references --component-manifest ../../src/bar/meta/bar.cmx "
    "--package-manifest obj/src/bar/foo_manifest "
    "--gn-label //src/bar$:bar_cmc_validate_references"
)

COMPILE_QUX = (
    "  command = ../../host_x64/cmc compile ../../src/qux/meta/qux.cml "
    "--output obj/src/qux/qux.cm --includeroot ../../ --includepath ../../ "
    "--depfile obj/src/qux/qux.cm.d --features allow_long_names"
)

PM_FOO = (
    "  command = ../../host_x64/pm -o obj/src/bar/foo -m obj/src/bar/foo.manifest "
    "-n foo -version 0 build -output-package-manifest obj/src/bar/foo/package_manifest.json "
    "-depfile -blobsfile obj/src/bar/foo/blobs.json"
)

BASIC_LOG: List[str] = [
    "rule __src_bar_foo___rule",
    PM_FOO,
    "  description = ACTION //src/bar:foo(//build/toolchain/fuchsia:x64)",
    META_FAR_FOO,
    "rule __src_bar_bar_cmc_validate_references___rule",
    VALIDATE_BAR,
    "",
    BUILD_CMX_BAR,
]


@pytest.fixture
def make_checkout(tmp_path: Path) -> Callable[..., Path]:
    """Create a checkout whose build directory holds the given log lines."""

    def _make(lines: List[str], build_dir: str = "out/default") -> Path:
        root = tmp_path / "fuchsia"
        ninja_dir = root / build_dir
        ninja_dir.mkdir(parents=True, exist_ok=True)
        (ninja_dir / "toolchain.ninja").write_text("\n".join(lines) + "\n")
        return root

    return _make


@pytest.fixture
def checkout(make_checkout) -> Path:
    """Checkout with package foo -> component bar (+ sub-component baz)."""
    return make_checkout(BASIC_LOG)
