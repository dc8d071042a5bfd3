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

"""Link index configuration.

Options are passed explicitly to each indexing stage, so indexes built with
different settings can coexist.
"""

from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import BaseModel, Field

DEFAULT_BUILD_DIR = "out/default"
DEFAULT_NINJA_FILE = "toolchain.ninja"

# Editor setting key -> LinkIndexConfig field
SETTING_KEYS: Dict[str, str] = {
    "fuchsiAware.showUnresolvedTerminalLinks": "show_unresolved_links",
    "fuchsiAware.normalizeWordSeparators": "normalize_word_separators",
    "useHeuristicsToFindMoreLinks": "use_heuristics_to_find_more_links",
    "fuchsiAware.useHeuristicsToFindMoreLinks": "use_heuristics_to_find_more_links",
    "fuchsiAware.buildDir": "build_dir",
}


class LinkIndexConfig(BaseModel):
    """Configuration for building and querying a link index."""

    normalize_word_separators: bool = Field(
        default=False,
        description="Also register identifiers with '-' replaced by '_'",
    )
    use_heuristics_to_find_more_links: bool = Field(
        default=False,
        description="Retry unresolved component targets with common GN suffixes removed",
    )
    show_unresolved_links: bool = Field(
        default=False,
        description="Show terminal links for component URLs without a known manifest",
    )
    build_dir: str = Field(
        default=DEFAULT_BUILD_DIR,
        description="Build output directory, relative to the repository root",
    )
    ninja_file: str = Field(
        default=DEFAULT_NINJA_FILE,
        description="Dependency log file name inside build_dir",
    )

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "LinkIndexConfig":
        """Create a config from flat editor-style setting keys.

        Field names are accepted as keys too.

        Args:
            settings: Mapping such as ``{"fuchsiAware.normalizeWordSeparators": True}``

        Returns:
            LinkIndexConfig with unknown keys ignored and missing keys defaulted
        """
        values: Dict[str, Any] = {}
        for key, value in settings.items():
            field_name = SETTING_KEYS.get(key, key)
            if value is not None and field_name in cls.model_fields:
                values[field_name] = value
        return cls(**values)

    @classmethod
    def load_from_yaml(cls, path: Path) -> "LinkIndexConfig":
        """Load a config from a YAML settings file.

        Args:
            path: Path to YAML file

        Expected format (editor keys and field names are both accepted):
        ```yaml
        fuchsiAware.normalizeWordSeparators: true
        build_dir: out/x64
        ```

        Raises:
            OSError: If the file cannot be read
            yaml.YAMLError: If the file is not valid YAML
            ValueError: If the document is not a mapping or a value is invalid
        """
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping of settings in {path}")
        return cls.from_settings(data)
