from __future__ import annotations

from .schema import (
    Cardinality,
    FieldSchema,
    FieldSlot,
    SchemaEntry,
    SubclassMarker,
    distinct_points,
    min_count,
    positive,
)
from .record import Record
from .values import ValueType, split_binary
from .versions import FLATLAND, DXFVersion

DEFAULT_LAYER = "0"
DEFAULT_LINETYPE = "BYLAYER"
DEFAULT_DIMSTYLE = "STANDARD"
COLOR_BYLAYER = 256
LINEWEIGHT_BYLAYER = -1

REPEATED = Cardinality.REPEATED
ORIGIN = (0.0, 0.0, 0.0)
Z_AXIS = (0.0, 0.0, 1.0)
X_AXIS = (1.0, 0.0, 0.0)


def common_entity_entries() -> list[SchemaEntry]:
    """Groups shared by every graphical entity, in write order."""
    return [
        SubclassMarker("AcDbEntity"),
        FieldSlot("paperspace", 67, ValueType.FLAG),
        FieldSlot("layer", 8, ValueType.STRING, DEFAULT_LAYER, always_write=True, required=True),
        FieldSlot("linetype", 6, ValueType.STRING, DEFAULT_LINETYPE, required=True),
        FieldSlot("elevation", 38, ValueType.DOUBLE, max_version=DXFVersion.R11, flag=FLATLAND),
        FieldSlot("material", 347, ValueType.HEX, min_version=DXFVersion.R2008),
        FieldSlot("color", 62, ValueType.SHORT, COLOR_BYLAYER),
        FieldSlot("lineweight", 370, ValueType.SHORT, LINEWEIGHT_BYLAYER, min_version=DXFVersion.R2002),
        FieldSlot("linetype_scale", 48, ValueType.DOUBLE, 1.0, min_version=DXFVersion.R13),
        FieldSlot("visibility", 60, ValueType.SHORT, min_version=DXFVersion.R13),
        FieldSlot("graphics_data_size", 92, ValueType.INT, min_version=DXFVersion.R2000, alt_codes=(160,)),
        FieldSlot("graphics_data", 310, ValueType.BINARY, min_version=DXFVersion.R2000, cardinality=REPEATED),
        FieldSlot("true_color", 420, ValueType.INT, min_version=DXFVersion.R2004),
        FieldSlot("color_name", 430, ValueType.STRING, min_version=DXFVersion.R2004),
        FieldSlot("transparency", 440, ValueType.INT, min_version=DXFVersion.R2004),
        FieldSlot("plotstyle_handle", 390, ValueType.HEX, min_version=DXFVersion.R2000),
        FieldSlot("shadow_mode", 284, ValueType.SHORT, min_version=DXFVersion.R2008),
    ]


def _point(name: str, base: int, default: tuple[float, float, float] = ORIGIN, **kwargs) -> FieldSlot:
    return FieldSlot(name, (base, base + 10, base + 20), ValueType.DOUBLE, default, **kwargs)


LINE = FieldSchema(
    "LINE",
    (
        *common_entity_entries(),
        SubclassMarker("AcDbLine"),
        FieldSlot("thickness", 39, ValueType.DOUBLE),
        _point("start", 10, always_write=True),
        _point("end", 11, always_write=True),
        _point("extrusion", 210, Z_AXIS, min_version=DXFVersion.R12),
    ),
    aliases=("3DLINE",),
    validators=(distinct_points("start", "end"),),
)

CIRCLE = FieldSchema(
    "CIRCLE",
    (
        *common_entity_entries(),
        SubclassMarker("AcDbCircle"),
        FieldSlot("thickness", 39, ValueType.DOUBLE),
        _point("center", 10, always_write=True),
        FieldSlot("radius", 40, ValueType.DOUBLE, 1.0, always_write=True),
        _point("extrusion", 210, Z_AXIS, min_version=DXFVersion.R12),
    ),
    validators=(positive("radius"),),
)

POINT = FieldSchema(
    "POINT",
    (
        *common_entity_entries(),
        SubclassMarker("AcDbPoint"),
        _point("location", 10, always_write=True),
        FieldSlot("thickness", 39, ValueType.DOUBLE),
        _point("extrusion", 210, Z_AXIS, min_version=DXFVersion.R12),
        FieldSlot("angle", 50, ValueType.DOUBLE),
    ),
)

LEADER = FieldSchema(
    "LEADER",
    (
        *common_entity_entries(),
        SubclassMarker("AcDbLeader"),
        FieldSlot("dimstyle", 3, ValueType.STRING, DEFAULT_DIMSTYLE, always_write=True, required=True),
        FieldSlot("has_arrowhead", 71, ValueType.FLAG, True, always_write=True),
        FieldSlot("path_type", 72, ValueType.SHORT, always_write=True),
        FieldSlot("annotation_type", 73, ValueType.SHORT, 3, always_write=True),
        FieldSlot("hookline_direction", 74, ValueType.SHORT),
        FieldSlot("has_hookline", 75, ValueType.FLAG),
        FieldSlot("text_height", 40, ValueType.DOUBLE),
        FieldSlot("text_width", 41, ValueType.DOUBLE),
        FieldSlot("vertex_count", 76, ValueType.SHORT, always_write=True, counts="vertices"),
        _point("vertices", 10, cardinality=REPEATED),
        FieldSlot("block_color", 77, ValueType.SHORT, COLOR_BYLAYER),
        FieldSlot("annotation_handle", 340, ValueType.HEX),
        _point("normal_vector", 210, Z_AXIS),
        _point("horizontal_direction", 211, X_AXIS),
        _point("leader_offset_block_ref", 212),
        _point("leader_offset_annotation_placement", 213),
    ),
    min_version=DXFVersion.R13,
    validators=(min_count("vertices", 2),),
)

OBJECT_PTR = FieldSchema(
    "OBJECT_PTR",
    (FieldSlot("xdata", 1001, ValueType.STRING, cardinality=REPEATED),),
    min_version=DXFVersion.R14,
)

THUMBNAILIMAGE = FieldSchema(
    "THUMBNAILIMAGE",
    (
        FieldSlot("byte_count", 90, ValueType.INT, always_write=True),
        FieldSlot("data", 310, ValueType.BINARY, cardinality=REPEATED),
    ),
    handle_code=None,
    min_version=DXFVersion.R2000,
)

def thumbnail_record(image: bytes) -> Record:
    """THUMBNAILIMAGE record for a preview image, chunked for ``310`` lines."""
    return THUMBNAILIMAGE.new_record(byte_count=len(image), data=split_binary(image))


def thumbnail_image(record: Record) -> bytes:
    """Reassemble the preview image; raises `ValueError` if chunks are missing."""
    image = b"".join(record["data"])
    if len(image) != record["byte_count"]:
        raise ValueError(f"thumbnail announces {record['byte_count']} bytes, found {len(image)}")
    return image


KINDS: dict[str, FieldSchema] = {
    schema.name: schema for schema in (LINE, CIRCLE, POINT, LEADER, OBJECT_PTR, THUMBNAILIMAGE)
}


def schema_for(kind: str) -> FieldSchema:
    """Look up a built-in schema by record name or alias."""
    name = kind.strip().upper()
    if name in KINDS:
        return KINDS[name]
    for schema in KINDS.values():
        if schema.matches(name):
            return schema
    raise KeyError(f"no built-in schema for record kind {kind!r}")
