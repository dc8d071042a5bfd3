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

"""Streaming reader for ninja dependency logs."""

from typing import Iterable, Iterator, List

CONTINUATION = "$"


def _is_continued(line: str) -> bool:
    """Check for a trailing, unescaped ``$``.

    ``$$`` is an escaped dollar sign, so only an odd run of trailing dollars
    continues the statement.
    """
    count = len(line) - len(line.rstrip(CONTINUATION))
    return count % 2 == 1


def iter_statements(lines: Iterable[str]) -> Iterator[str]:
    """Yield logical statements from a line-oriented ninja file.

    A statement is a physical line plus every line it continues onto with a
    trailing ``$``. Continuation markers are dropped and the parts are joined
    with newlines. Only one statement is held in memory at a time.

    Args:
        lines: Lines of the file, with or without line terminators

    Yields:
        One logical statement per iteration
    """
    parts: List[str] = []
    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if _is_continued(line):
            parts.append(line[:-1])
            continue
        parts.append(line)
        yield "\n".join(parts)
        parts = []
    if parts:
        yield "\n".join(parts)
