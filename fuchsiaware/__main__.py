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

"""Command line access to the component link index.

Examples:
    python -m fuchsiaware --root ~/fuchsia resolve my-package/my-component
    python -m fuchsiaware --root ~/fuchsia references src/foo/meta/foo.cml
    python -m fuchsiaware --root ~/fuchsia links src/foo/BUILD.gn
    python -m fuchsiaware --root ~/fuchsia stats
    python -m fuchsiaware --root ~/fuchsia --config fuchsiaware.yaml stats
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fuchsiaware.config import DEFAULT_BUILD_DIR, LinkIndexConfig
from fuchsiaware.index import find_component_urls
from fuchsiaware.manager import LinkIndexManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fuchsiaware",
        description="Resolve component URLs to manifests and find their references.",
    )
    parser.add_argument("--root", default=".", help="Repository root (default: .)")
    parser.add_argument("--config", help="YAML settings file; flags override its values")
    parser.add_argument(
        "--build-dir",
        help=f"Build output directory relative to the root (default: {DEFAULT_BUILD_DIR})",
    )
    parser.add_argument(
        "--normalize", action="store_true", help="Treat '-' and '_' in identifiers as equal"
    )
    parser.add_argument(
        "--heuristics", action="store_true", help="Use suffix heuristics to find more links"
    )
    parser.add_argument(
        "--show-unresolved", action="store_true", help="List URLs without a known manifest"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Find the manifest for identifiers")
    resolve.add_argument("identifiers", nargs="+", help="package/component identifiers")

    references = subparsers.add_parser("references", help="Find references to a manifest")
    references.add_argument("manifest", help="Manifest path (absolute or root-relative)")

    links = subparsers.add_parser("links", help="Resolve every component URL in a file")
    links.add_argument("file", help="File to scan")

    subparsers.add_parser("stats", help="Show index counts and diagnostics")
    return parser


def _print_diagnostics(console: Console, manager: LinkIndexManager) -> None:
    for diagnostic in manager.diagnostics:
        style = "red" if diagnostic.fatal else "yellow"
        console.print(
            Panel(Text(diagnostic.message), title=diagnostic.kind.value, border_style=style)
        )


def _resolve(console: Console, manager: LinkIndexManager, identifiers: List[str]) -> None:
    for identifier in identifiers:
        manifest = manager.resolve(identifier)
        if manifest is None:
            console.print(f"[red]{identifier}[/]: not found")
        else:
            console.print(f"[green]{identifier}[/]: {manifest}")


def _references(console: Console, manager: LinkIndexManager, manifest: str) -> None:
    references = manager.references_for(Path(manifest))
    if not references:
        console.print(f"[dim]No references to {manifest}[/]")
        return
    for reference in references:
        console.print(str(reference), markup=False)


def _links(console: Console, manager: LinkIndexManager, file: str) -> None:
    text = Path(file).read_text(encoding="utf-8", errors="replace")
    table = Table(title=file)
    table.add_column("Component URL")
    table.add_column("Manifest")
    for component_url in find_component_urls(text):
        manifest = manager.resolve(component_url.identifier)
        if manifest is None and not manager.config.show_unresolved_links:
            continue
        table.add_row(component_url.url, str(manifest) if manifest else "[red]not found[/]")
    console.print(table)


def _stats(console: Console, manager: LinkIndexManager) -> None:
    table = Table(title=str(manager.base_path))
    table.add_column("Entry")
    table.add_column("Count", justify="right")
    for name, count in manager.index.stats().items():
        table.add_row(name, str(count))
    console.print(table)
    _print_diagnostics(console, manager)


def _load_config(args: argparse.Namespace) -> LinkIndexConfig:
    if args.config:
        config = LinkIndexConfig.load_from_yaml(Path(args.config))
    else:
        config = LinkIndexConfig()
    overrides: Dict[str, Any] = {}
    if args.build_dir:
        overrides["build_dir"] = args.build_dir
    if args.normalize:
        overrides["normalize_word_separators"] = True
    if args.heuristics:
        overrides["use_heuristics_to_find_more_links"] = True
    if args.show_unresolved:
        overrides["show_unresolved_links"] = True
    return config.model_copy(update=overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    console = Console()
    try:
        config = _load_config(args)
    except (OSError, yaml.YAMLError, ValueError) as e:
        console.print(Text(f"Invalid configuration: {e}", style="red"))
        return 2

    manager = LinkIndexManager(args.root, config)
    success = asyncio.run(manager.initialize())

    if args.command == "resolve":
        _resolve(console, manager, args.identifiers)
    elif args.command == "references":
        _references(console, manager, args.manifest)
    elif args.command == "links":
        _links(console, manager, args.file)
    elif args.command == "stats":
        _stats(console, manager)

    if not success and args.command != "stats":
        _print_diagnostics(console, manager)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
