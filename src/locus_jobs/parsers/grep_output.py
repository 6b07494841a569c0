"""Parse ``grep -rn`` output into TODO/FIXME/HACK/XXX markers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import os
import re

MarkerType = Literal["TODO", "FIXME", "HACK", "XXX"]
MARKER_TYPES: tuple[MarkerType, ...] = ("TODO", "FIXME", "HACK", "XXX")

_GREP_LINE_RE = re.compile(r"^(.+?):(\d+):(.*)$")
_MARKER_RE = re.compile(r"\b(TODO|FIXME|HACK|XXX)\b:?\s*(.*)")


@dataclass(frozen=True, slots=True)
class TodoItem:
    file: str
    line: int
    type: MarkerType
    text: str


def _relative(path: str, project_path: Path) -> str:
    try:
        relative = os.path.relpath(path, project_path)
    except ValueError:
        return path
    return Path(relative).as_posix()


def parse_grep_output(stdout: str, project_path: Path | str) -> list[TodoItem]:
    """Convert ``file:line:content`` triples into :class:`TodoItem` records.

    Paths are reported relative to ``project_path``; lines without a marker
    word (for example ``TODOS`` inside an identifier) are dropped.
    """
    root = Path(project_path)
    items: list[TodoItem] = []
    for raw_line in stdout.splitlines():
        if not raw_line.strip():
            continue
        match = _GREP_LINE_RE.match(raw_line)
        if match is None:
            continue
        file_path, line_number, content = match.groups()
        marker = _MARKER_RE.search(content)
        if marker is None:
            continue
        text = marker.group(2).strip() or content.strip()
        items.append(
            TodoItem(
                file=_relative(file_path, root),
                line=int(line_number),
                type=marker.group(1),  # type: ignore[arg-type]
                text=text,
            )
        )
    return items


__all__ = ["MARKER_TYPES", "MarkerType", "TodoItem", "parse_grep_output"]
