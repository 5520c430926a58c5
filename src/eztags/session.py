from __future__ import annotations

import logging
from typing import IO, Iterable

from .chain import RecordChain
from .codec import RecordCodec
from .diagnostics import CommentSink, Diagnostics
from .errors import IoFailure, MalformedCode, UnexpectedEof, UnexpectedRecordKind, UnknownTag
from .record import Record
from .schema import FieldSchema
from .tags import BOUNDARY_CODE, COMMENT_CODE, DEFAULT_ENCODING, TagReader, TagWriter
from .versions import DXFVersion, VersionContext

logger = logging.getLogger(__name__)


class Session:
    """One decode/encode pass over a single stream.

    The caller owns the stream and decides which schema applies to the next
    record, usually after looking at `peek_kind`.
    """

    def __init__(
        self,
        stream: IO,
        context: VersionContext,
        *,
        strict: bool = False,
        encoding: str = DEFAULT_ENCODING,
        comment_sink: CommentSink | None = None,
    ) -> None:
        self.stream = stream
        self.context = context
        self.diagnostics = Diagnostics(strict=strict, comment_sink=comment_sink)
        self.codec = RecordCodec(context, self.diagnostics)
        self.reader = TagReader(stream, encoding=encoding)
        self.writer = TagWriter(stream, encoding=encoding)
        self.closed = False

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def version(self) -> DXFVersion:
        return self.context.version

    def _check_open(self) -> None:
        if self.closed:
            raise IoFailure("session is closed", line_number=self.reader.line_number)

    def peek_kind(self) -> str | None:
        """Name of the next record, or ``None`` at the end of the stream.

        Tags in front of the next boundary tag are skipped with a diagnostic.
        """
        self._check_open()
        while True:
            try:
                tag = self.reader.peek()
            except MalformedCode as exc:
                self.diagnostics.report(exc)
                continue
            except UnexpectedEof as exc:
                self.diagnostics.report(exc)
                return None
            if tag is None:
                return None
            if tag.code == BOUNDARY_CODE:
                return tag.value.strip()
            self.reader.next_tag()
            if tag.code == COMMENT_CODE:
                self.diagnostics.comment(tag.value, self.reader.tag_line)
                continue
            self.diagnostics.report(
                UnknownTag("tag outside of a record skipped", line_number=self.reader.tag_line, code=tag.code)
            )

    def decode_next(self, schema: FieldSchema) -> Record | None:
        kind = self.peek_kind()
        if kind is None:
            return None
        if not schema.matches(kind):
            raise UnexpectedRecordKind(
                f"expected {' or '.join(schema.names)}, found {kind}",
                line_number=self.reader.tag_line,
                code=BOUNDARY_CODE,
            )
        self.reader.next_tag()
        return self.codec.decode(schema, self.reader)

    def decode_chain(self, schema: FieldSchema) -> RecordChain:
        """Decode consecutive records of one kind into a new chain."""
        chain = RecordChain(schema.name)
        while True:
            kind = self.peek_kind()
            if kind is None or not schema.matches(kind):
                return chain
            record = self.decode_next(schema)
            if record is None:
                return chain
            chain.append(record)

    def skip_record(self) -> str | None:
        """Consume the next record without decoding it; returns its name."""
        kind = self.peek_kind()
        if kind is None:
            return None
        self.reader.next_tag()
        while True:
            try:
                tag = self.reader.next_tag()
            except MalformedCode as exc:
                self.diagnostics.report(exc)
                continue
            except UnexpectedEof as exc:
                self.diagnostics.report(exc)
                return kind
            if tag is None:
                return kind
            if tag.code == BOUNDARY_CODE:
                self.reader.push_back(tag)
                return kind

    def encode(self, record: Record, schema: FieldSchema) -> int:
        self._check_open()
        return self.codec.encode(record, schema, self.writer)

    def encode_chain(self, chain: Iterable[Record], schema: FieldSchema) -> int:
        written = 0
        for record in chain:
            written += self.encode(record, schema)
        return written

    def write_comment(self, text: str) -> None:
        self._check_open()
        self.writer.write_comment(text)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.writer.tags_written:
            self.writer.end_record()
        logger.debug(
            "session closed: %d lines read, %d tags written, %d diagnostics",
            self.reader.line_number,
            self.writer.tags_written,
            len(self.diagnostics),
        )


def open_session(
    stream: IO,
    version: str | int | DXFVersion,
    *,
    flatland: bool = False,
    strict: bool = False,
    encoding: str = DEFAULT_ENCODING,
    comment_sink: CommentSink | None = None,
) -> Session:
    context = VersionContext.create(version, flatland=flatland)
    return Session(stream, context, strict=strict, encoding=encoding, comment_sink=comment_sink)
