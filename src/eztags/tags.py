from __future__ import annotations

import io
from typing import IO, Iterator, NamedTuple

from .errors import IoFailure, MalformedCode, UnexpectedEof

MIN_GROUP_CODE = 0
MAX_GROUP_CODE = 1071
BOUNDARY_CODE = 0
COMMENT_CODE = 999
DEFAULT_ENCODING = "cp1252"


class Tag(NamedTuple):
    code: int
    value: str

    def is_boundary(self, name: str | None = None) -> bool:
        if self.code != BOUNDARY_CODE:
            return False
        return name is None or self.value.strip() == name


def valid_group_code(code: int) -> bool:
    return MIN_GROUP_CODE <= code <= MAX_GROUP_CODE


class TagReader:
    """Reads ``(code, value)`` pairs, two physical lines per tag.

    ``line_number`` counts consumed lines; diagnostics point at the code line
    of the tag that caused them. A failed stream leaves the reader in a
    terminal state that re-raises the original `IoFailure`.
    """

    def __init__(self, stream: IO, *, encoding: str = DEFAULT_ENCODING, name: str | None = None) -> None:
        self._stream = stream
        self._encoding = encoding
        self._pending: Tag | None = None
        self._pending_line = 0
        self._failure: IoFailure | None = None
        self.name = name if name is not None else str(getattr(stream, "name", "<stream>"))
        self.line_number = 0
        self.tag_line = 0

    @property
    def failed(self) -> bool:
        return self._failure is not None

    def __iter__(self) -> Iterator[Tag]:
        while True:
            tag = self.next_tag()
            if tag is None:
                return
            yield tag

    def next_tag(self) -> Tag | None:
        if self._failure is not None:
            raise self._failure
        if self._pending is not None:
            tag = self._pending
            self._pending = None
            self.tag_line = self._pending_line
            return tag

        code_line = self._readline()
        if code_line is None:
            return None
        self.tag_line = self.line_number + 1
        value_line = self._readline()
        if value_line is None:
            self.line_number += 1
            if not code_line.strip():
                # trailing blank line
                return None
            raise UnexpectedEof(
                f"stream ended after group code {code_line.strip()!r} in {self.name}",
                line_number=self.tag_line,
            )
        self.line_number += 2

        text = code_line.strip()
        try:
            code = int(text)
        except ValueError:
            raise MalformedCode(
                f"group code {text!r} is not an integer in {self.name}",
                line_number=self.tag_line,
            ) from None
        if not valid_group_code(code):
            raise MalformedCode(
                f"group code {code} is out of range in {self.name}",
                line_number=self.tag_line,
            )
        return Tag(code, value_line)

    def peek(self) -> Tag | None:
        tag = self.next_tag()
        if tag is not None:
            self.push_back(tag)
        return tag

    def push_back(self, tag: Tag) -> None:
        if self._pending is not None:
            raise RuntimeError("only one tag can be pushed back")
        self._pending = tag
        self._pending_line = self.tag_line

    def _readline(self) -> str | None:
        try:
            line = self._stream.readline()
        except (OSError, ValueError) as exc:
            self._failure = IoFailure(
                f"read from {self.name} failed: {exc}",
                line_number=self.line_number + 1,
            )
            raise self._failure from exc
        if not line:
            return None
        if isinstance(line, bytes):
            line = line.decode(self._encoding, errors="replace")
        return line.rstrip("\r\n")


class TagWriter:
    """Writes tags in the two-line form with the group code right aligned."""

    def __init__(self, stream: IO, *, encoding: str = DEFAULT_ENCODING, name: str | None = None) -> None:
        self._stream = stream
        self._encoding = encoding
        self._binary = isinstance(stream, (io.RawIOBase, io.BufferedIOBase))
        self.name = name if name is not None else str(getattr(stream, "name", "<stream>"))
        self.line_number = 0
        self.tags_written = 0

    def write_tag(self, code: int, value: str) -> None:
        if not valid_group_code(code):
            raise ValueError(f"invalid group code: {code}")
        if "\n" in value or "\r" in value:
            raise ValueError(f"group {code} value contains a line break: {value!r}")
        self._write(f"{code:>3}\n{value}\n")
        self.line_number += 2
        self.tags_written += 1

    def write_comment(self, text: str) -> None:
        self.write_tag(COMMENT_CODE, text)

    def end_record(self) -> None:
        flush = getattr(self._stream, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except (OSError, ValueError) as exc:
            raise IoFailure(f"flush of {self.name} failed: {exc}", line_number=self.line_number) from exc

    def _write(self, text: str) -> None:
        try:
            if self._binary:
                self._stream.write(text.encode(self._encoding, errors="replace"))
            else:
                self._stream.write(text)
        except (OSError, ValueError) as exc:
            raise IoFailure(
                f"write to {self.name} failed: {exc}",
                line_number=self.line_number + 1,
            ) from exc
