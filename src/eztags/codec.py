from __future__ import annotations

import logging
from typing import Any

from .diagnostics import Diagnostics
from .errors import (
    MalformedCode,
    ParseError,
    UnexpectedEof,
    UnexpectedRecordKind,
    UnknownTag,
    ValidationFailed,
)
from .record import Record
from .schema import (
    APP_GROUP_CODE,
    HARD_OWNER_CODE,
    SOFT_OWNER_CODE,
    SUBCLASS_CODE,
    FieldSchema,
    FieldSlot,
    SubclassMarker,
)
from .tags import BOUNDARY_CODE, COMMENT_CODE, Tag, TagReader, TagWriter
from .values import ValueType, decode_value, encode_value
from .versions import DXFVersion, VersionContext

logger = logging.getLogger(__name__)

OWNER_GROUPS_VERSION = DXFVersion.R14
REACTORS_GROUP = "{ACAD_REACTORS"
XDICTIONARY_GROUP = "{ACAD_XDICTIONARY"
GROUP_END = "}"
OWNER_GROUPS = {REACTORS_GROUP: SOFT_OWNER_CODE, XDICTIONARY_GROUP: HARD_OWNER_CODE}


class RecordCodec:
    """Table-driven decoder/encoder for one session.

    The codec holds no per-record state; everything a record needs lives in
    the schema, the version context and the record itself.
    """

    def __init__(self, context: VersionContext, diagnostics: Diagnostics | None = None) -> None:
        self.context = context
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    # decoding

    def decode(self, schema: FieldSchema, reader: TagReader) -> Record:
        """Read one record body, stopping before the next ``0`` tag.

        The boundary tag naming the record kind must already be consumed.
        """
        record = schema.new_record()
        open_tuples: dict[str, list[Any]] = {}
        seen: set[str] = set()
        # (name, line) of the application group being read
        app_group: tuple[str, int] | None = None

        while True:
            try:
                tag = reader.next_tag()
            except MalformedCode as exc:
                self.diagnostics.report(exc)
                continue
            except UnexpectedEof as exc:
                self.diagnostics.report(exc)
                break
            if tag is None:
                break
            if tag.code == BOUNDARY_CODE:
                reader.push_back(tag)
                break
            line = reader.tag_line
            if app_group is not None:
                app_group = self._decode_group_tag(schema, record, tag, line, app_group)
            elif tag.code == APP_GROUP_CODE and self.context.supports(OWNER_GROUPS_VERSION):
                app_group = self._open_group(schema, tag, line)
            else:
                self._decode_tag(schema, record, tag, line, open_tuples, seen)

        if app_group is not None:
            self.diagnostics.report(
                ParseError(
                    f"{schema.name}: application group {app_group[0]} is not terminated",
                    line_number=app_group[1],
                    code=APP_GROUP_CODE,
                )
            )
        for name, parts in open_tuples.items():
            if any(part is not None for part in parts):
                self.diagnostics.report(
                    ParseError(f"{schema.name}.{name}: incomplete coordinate tuple dropped", line_number=reader.line_number)
                )
        self._repair(schema, record, seen, reader.line_number)
        return record

    def _decode_tag(
        self,
        schema: FieldSchema,
        record: Record,
        tag: Tag,
        line: int,
        open_tuples: dict[str, list[Any]],
        seen: set[str],
    ) -> None:
        code = tag.code
        if code == COMMENT_CODE:
            self.diagnostics.comment(tag.value, line)
            return
        if code == schema.handle_code:
            record.handle = self._decode_value(schema, "handle", tag, ValueType.HEX, line, record.handle)
            return
        if code == SUBCLASS_CODE:
            self._check_marker(schema, tag, line)
            return

        match = schema.lookup(code)
        if match is None:
            if code in OWNER_GROUPS.values() and self.context.supports(OWNER_GROUPS_VERSION):
                self._decode_owner(schema, record, tag, line)
                return
            self.diagnostics.report(
                UnknownTag(f"{schema.name}: unknown group code", line_number=line, code=code)
            )
            return

        slot, index = match
        if not self.context.applies(slot):
            self.diagnostics.report(
                UnknownTag(
                    f"{schema.name}.{slot.name} is not valid for {self.context.version.name}",
                    line_number=line,
                    code=code,
                )
            )
            return
        try:
            value = decode_value(tag.value, slot.type)
        except ParseError as exc:
            self.diagnostics.report(
                ParseError(f"{schema.name}.{slot.name}: {exc.message}", line_number=line, code=code)
            )
            return

        seen.add(slot.name)
        self._store(record, slot, index, value, open_tuples)

    def _decode_owner(self, schema: FieldSchema, record: Record, tag: Tag, line: int) -> None:
        attr = "soft_owner" if tag.code == SOFT_OWNER_CODE else "hard_owner"
        setattr(record, attr, self._decode_value(schema, attr, tag, ValueType.HEX, line, getattr(record, attr)))

    def _open_group(self, schema: FieldSchema, tag: Tag, line: int) -> tuple[str, int] | None:
        name = tag.value.strip()
        if len(name) > 1 and name.startswith("{"):
            return (name, line)
        self.diagnostics.report(
            UnknownTag(f"{schema.name}: application group end {name!r} without a start", line_number=line, code=tag.code)
        )
        return None

    def _decode_group_tag(
        self, schema: FieldSchema, record: Record, tag: Tag, line: int, group: tuple[str, int]
    ) -> tuple[str, int] | None:
        """Consume one tag inside an application group.

        Only the owner handle of the two owner groups is kept; the contents of
        any other group are skipped.
        """
        name, start = group
        if tag.code == APP_GROUP_CODE:
            if tag.value.strip() == GROUP_END:
                return None
            self.diagnostics.report(
                ParseError(f"{schema.name}: application group {name} is not terminated", line_number=start, code=tag.code)
            )
            return self._open_group(schema, tag, line)
        if tag.code == COMMENT_CODE:
            self.diagnostics.comment(tag.value, line)
        elif OWNER_GROUPS.get(name) == tag.code:
            self._decode_owner(schema, record, tag, line)
        elif name in OWNER_GROUPS:
            self.diagnostics.report(
                UnknownTag(f"{schema.name}: unexpected tag in {name}", line_number=line, code=tag.code)
            )
        return group

    def _decode_value(
        self, schema: FieldSchema, name: str, tag: Tag, value_type: ValueType, line: int, fallback: Any
    ) -> Any:
        try:
            return decode_value(tag.value, value_type)
        except ParseError as exc:
            self.diagnostics.report(
                ParseError(f"{schema.name}.{name}: {exc.message}", line_number=line, code=tag.code)
            )
            return fallback

    def _check_marker(self, schema: FieldSchema, tag: Tag, line: int) -> None:
        marker = tag.value.strip()
        if not self.context.supports(DXFVersion.R13):
            self.diagnostics.report(
                UnknownTag(f"{schema.name}: subclass marker {marker!r} before R13", line_number=line, code=tag.code)
            )
            return
        if marker not in schema.markers:
            self.diagnostics.report(
                UnknownTag(f"{schema.name}: bad subclass marker {marker!r}", line_number=line, code=tag.code)
            )

    @staticmethod
    def _store(record: Record, slot: FieldSlot, index: int, value: Any, open_tuples: dict[str, list[Any]]) -> None:
        if not slot.is_tuple:
            if slot.repeated:
                record.dxf[slot.name].append(value)
            else:
                record.dxf[slot.name] = value
            return

        if not slot.repeated:
            parts = list(record.dxf[slot.name])
            parts[index] = value
            record.dxf[slot.name] = tuple(parts)
            return

        parts = open_tuples.setdefault(slot.name, [None] * len(slot.codes))
        parts[index] = value
        if index == len(slot.codes) - 1:
            missing = 0.0 if slot.type is ValueType.DOUBLE else 0
            record.dxf[slot.name].append(tuple(missing if part is None else part for part in parts))
            del open_tuples[slot.name]

    def _repair(self, schema: FieldSchema, record: Record, seen: set[str], line: int) -> None:
        for slot in schema.slots:
            value = record.dxf[slot.name]
            if slot.required and not slot.repeated and value == "":
                record.dxf[slot.name] = slot.default
            if slot.counts is not None:
                actual = len(record.dxf[slot.counts])
                if slot.name in seen and value != actual:
                    self.diagnostics.report(
                        ParseError(
                            f"{schema.name}.{slot.name} announces {value} elements, found {actual}",
                            line_number=line,
                            code=slot.codes[0],
                        )
                    )
                record.dxf[slot.name] = actual

    # encoding

    def validate(self, record: Record, schema: FieldSchema) -> list[str]:
        return [problem for problem in (check(record) for check in schema.validators) if problem]

    def render(self, record: Record, schema: FieldSchema) -> list[tuple[int, str]]:
        """Produce every tag of ``record`` without writing anything.

        Raises `ValidationFailed` when a validator rejects the record or a
        value cannot be encoded.
        """
        if record.released:
            raise ValueError(f"{record.dxftype} record was already released")
        if not schema.matches(record.dxftype):
            raise UnexpectedRecordKind(f"cannot encode a {record.dxftype} record with the {schema.name} schema")
        problems = self.validate(record, schema)
        if problems:
            raise ValidationFailed(schema.name, problems, handle=record.handle)
        try:
            return self._render(record, schema)
        except (TypeError, ValueError) as exc:
            raise ValidationFailed(schema.name, [str(exc)], handle=record.handle) from exc

    def _render(self, record: Record, schema: FieldSchema) -> list[tuple[int, str]]:
        ctx = self.context
        tags: list[tuple[int, str]] = [(BOUNDARY_CODE, schema.name)]
        if record.handle is not None and schema.handle_code is not None:
            tags.append((schema.handle_code, encode_value(record.handle, ValueType.HEX)))
        if ctx.supports(OWNER_GROUPS_VERSION):
            for group, code, handle in (
                (REACTORS_GROUP, SOFT_OWNER_CODE, record.soft_owner),
                (XDICTIONARY_GROUP, HARD_OWNER_CODE, record.hard_owner),
            ):
                if handle is None or schema.claims(code):
                    continue
                tags.append((APP_GROUP_CODE, group))
                tags.append((code, encode_value(handle, ValueType.HEX)))
                tags.append((APP_GROUP_CODE, GROUP_END))

        for entry in schema:
            if isinstance(entry, SubclassMarker):
                if ctx.supports(entry.min_version, entry.max_version):
                    tags.append((SUBCLASS_CODE, entry.name))
                continue
            if not ctx.applies(entry):
                continue
            tags.extend(self._slot_tags(record, entry))
        return tags

    @staticmethod
    def _slot_tags(record: Record, slot: FieldSlot) -> list[tuple[int, str]]:
        value = record.dxf.get(slot.name, slot.initial_value())
        if slot.counts is not None:
            value = len(record.dxf.get(slot.counts, ()))
        if slot.required and value == "":
            value = slot.default
        if not slot.always_write and slot.is_default(value):
            return []

        elements = value if slot.repeated else [value]
        tags: list[tuple[int, str]] = []
        for element in elements:
            if not slot.is_tuple:
                tags.append((slot.codes[0], encode_value(element, slot.type)))
                continue
            parts = tuple(element)
            if len(parts) != len(slot.codes):
                raise ValueError(f"{slot.name} needs {len(slot.codes)} components, found {len(parts)}")
            tags.extend((code, encode_value(part, slot.type)) for code, part in zip(slot.codes, parts))
        return tags

    def encode(self, record: Record, schema: FieldSchema, writer: TagWriter) -> int:
        """Write ``record``; returns the number of tags written.

        Validation happens before the first write, so a rejected record leaves
        no output. An `IoFailure` aborts the record where it happened.
        """
        tags = self.render(record, schema)
        if schema.min_version is not None and not self.context.supports(schema.min_version):
            logger.warning(
                "%s is not defined before %s, writing it for %s anyway",
                schema.name,
                schema.min_version.name,
                self.context.version.name,
            )
        for code, value in tags:
            writer.write_tag(code, value)
        writer.end_record()
        return len(tags)


def decode_record(schema: FieldSchema, reader: TagReader, context: VersionContext) -> Record:
    return RecordCodec(context).decode(schema, reader)


def encode_record(record: Record, schema: FieldSchema, writer: TagWriter, context: VersionContext) -> int:
    return RecordCodec(context).encode(record, schema, writer)
