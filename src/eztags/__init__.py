from .chain import RecordChain
from .codec import RecordCodec, decode_record, encode_record
from .diagnostics import Diagnostic, Diagnostics
from .errors import (
    ChainNotTerminated,
    IoFailure,
    MalformedCode,
    ParseError,
    SchemaError,
    TagStreamError,
    UnexpectedEof,
    UnexpectedRecordKind,
    UnknownTag,
    ValidationFailed,
)
from .export import ConvertResult, to_dxf
from .record import Record
from .schema import Cardinality, FieldSchema, FieldSlot, SubclassMarker
from .session import Session, open_session
from .tags import Tag, TagReader, TagWriter
from .values import ValueType
from .versions import DXFVersion, VersionContext
from . import kinds

__all__ = [
    "open_session",
    "Session",
    "Tag",
    "TagReader",
    "TagWriter",
    "ValueType",
    "FieldSlot",
    "FieldSchema",
    "SubclassMarker",
    "Cardinality",
    "Record",
    "RecordChain",
    "RecordCodec",
    "decode_record",
    "encode_record",
    "DXFVersion",
    "VersionContext",
    "Diagnostic",
    "Diagnostics",
    "TagStreamError",
    "IoFailure",
    "MalformedCode",
    "UnexpectedEof",
    "ParseError",
    "UnknownTag",
    "UnexpectedRecordKind",
    "ChainNotTerminated",
    "ValidationFailed",
    "SchemaError",
    "to_dxf",
    "ConvertResult",
    "kinds",
]
