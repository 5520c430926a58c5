from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .errors import TagStreamError

logger = logging.getLogger(__name__)

CommentSink = Callable[[str, int], None]


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    message: str
    line_number: int | None = None
    code: int | None = None

    def __str__(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        return f"{where}{self.kind}: {self.message}"


class Diagnostics:
    """Collects non-fatal problems of a session.

    In strict mode the error is raised instead of being recorded.
    """

    def __init__(self, *, strict: bool = False, comment_sink: CommentSink | None = None) -> None:
        self.strict = strict
        self.comment_sink = comment_sink
        self.entries: list[Diagnostic] = []
        self.comments: list[str] = []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def report(self, error: TagStreamError) -> None:
        if self.strict:
            raise error
        entry = Diagnostic(
            kind=type(error).__name__,
            message=error.message,
            line_number=error.line_number,
            code=error.code,
        )
        self.entries.append(entry)
        logger.warning("%s", entry)

    def comment(self, text: str, line_number: int) -> None:
        self.comments.append(text)
        if self.comment_sink is not None:
            self.comment_sink(text, line_number)
            return
        logger.info("DXF comment at line %d: %s", line_number, text)

    def of_kind(self, kind: type[TagStreamError] | str) -> list[Diagnostic]:
        name = kind if isinstance(kind, str) else kind.__name__
        return [entry for entry in self.entries if entry.kind == name]

    def clear(self) -> None:
        self.entries.clear()
        self.comments.clear()
