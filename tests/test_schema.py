from __future__ import annotations

import pytest

from eztags import Cardinality, DXFVersion, FieldSchema, FieldSlot, SchemaError, SubclassMarker, ValueType, VersionContext
from eztags.kinds import KINDS, LINE, LEADER, schema_for
from eztags.versions import parse_version


def _schema(*entries) -> FieldSchema:
    return FieldSchema("TEST", entries)


def test_slot_defaults_follow_type_and_shape() -> None:
    schema = _schema(
        FieldSlot("name", 1, ValueType.STRING),
        FieldSlot("count", 90, ValueType.INT),
        FieldSlot("point", (10, 20, 30), ValueType.DOUBLE),
        FieldSlot("items", 1001, ValueType.STRING, cardinality=Cardinality.REPEATED),
    )

    assert schema.slot("name").default == ""
    assert schema.slot("count").default == 0
    assert schema.slot("point").default == (0.0, 0.0, 0.0)
    assert schema.slot("items").default == ()
    assert schema.new_record().dxf == {"name": "", "count": 0, "point": (0.0, 0.0, 0.0), "items": []}


@pytest.mark.parametrize(
    ("entries", "message"),
    [
        ((FieldSlot("a", 8, ValueType.STRING), FieldSlot("b", 8, ValueType.STRING)), "already used"),
        ((FieldSlot("a", 8, ValueType.STRING), FieldSlot("a", 6, ValueType.STRING)), "duplicate slot name"),
        ((FieldSlot("a", 0, ValueType.STRING),), "reserved"),
        ((FieldSlot("a", 100, ValueType.STRING),), "reserved"),
        ((FieldSlot("a", 102, ValueType.STRING),), "reserved"),
        ((FieldSlot("a", 999, ValueType.STRING),), "reserved"),
        ((FieldSlot("a", 5, ValueType.HEX),), "reserved"),
        ((FieldSlot("a", 2000, ValueType.INT),), "out of range"),
        ((FieldSlot("a", 8, ValueType.STRING, 5),), "not a valid string"),
        ((FieldSlot("a", (10, 20), ValueType.DOUBLE, (1.0, 2.0, 3.0)),), "2-tuple"),
        ((FieldSlot("a", 40, ValueType.DOUBLE, min_version=DXFVersion.R2000, max_version=DXFVersion.R12),), "after"),
        ((FieldSlot("a", 40, ValueType.DOUBLE, flag="wireframe"),), "modal flag"),
        ((FieldSlot("a", (10, 20), ValueType.DOUBLE, alt_codes=(11,)),), "alternate codes"),
        ((FieldSlot("n", 76, ValueType.SHORT, counts="b"), FieldSlot("b", 8, ValueType.STRING)), "not a repeated"),
        ((FieldSlot("n", 40, ValueType.DOUBLE, counts="missing"),), "single integer"),
    ],
)
def test_schema_rejects_broken_tables(entries: tuple, message: str) -> None:
    with pytest.raises(SchemaError, match=message):
        _schema(*entries)


def test_schema_rejects_bad_kind_name() -> None:
    with pytest.raises(SchemaError):
        FieldSchema(" LINE", ())


def test_schema_error_is_value_error() -> None:
    assert issubclass(SchemaError, ValueError)


def test_lookup_maps_codes_to_slot_components() -> None:
    slot, index = LINE.lookup(21)

    assert slot.name == "end"
    assert index == 1
    assert LINE.lookup(160)[0].name == "graphics_data_size"
    assert LINE.lookup(1000) is None
    assert LINE.claims(8)


def test_schema_exposes_names_and_markers() -> None:
    assert LINE.names == ("LINE", "3DLINE")
    assert LINE.matches("3DLINE")
    assert not LINE.matches("CIRCLE")
    assert LINE.markers == frozenset({"AcDbEntity", "AcDbLine"})
    assert [slot.name for slot in LINE.slots][:3] == ["paperspace", "layer", "linetype"]
    assert isinstance(next(iter(LINE)), SubclassMarker)


def test_new_record_applies_overrides() -> None:
    record = LINE.new_record(start=(1.0, 2.0, 0.0), layer="WALLS", handle=0x2A)

    assert record.dxftype == "LINE"
    assert record["start"] == (1.0, 2.0, 0.0)
    assert record["layer"] == "WALLS"
    assert record["linetype"] == "BYLAYER"
    assert record.handle == 0x2A
    with pytest.raises(KeyError):
        LINE.new_record(radius=1.0)


def test_new_record_copies_repeated_values() -> None:
    vertices = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)]
    record = LEADER.new_record(vertices=vertices)
    record["vertices"].append((2.0, 0.0, 0.0))

    assert len(vertices) == 2


def test_schemas_are_hashable_and_shared() -> None:
    assert len({LINE, LEADER, LINE}) == 2


def test_schema_for_resolves_aliases() -> None:
    assert schema_for("3dline") is LINE
    assert schema_for("LEADER") is LEADER
    assert set(KINDS) == {"LINE", "CIRCLE", "POINT", "LEADER", "OBJECT_PTR", "THUMBNAILIMAGE"}
    with pytest.raises(KeyError):
        schema_for("DIMENSION")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("AC1015", DXFVersion.R2000),
        ("ac1009", DXFVersion.R12),
        ("R14", DXFVersion.R14),
        ("r2018", DXFVersion.R2018),
        (2004, DXFVersion.R2004),
        (DXFVersion.R11, DXFVersion.R11),
    ],
)
def test_parse_version(value, expected: DXFVersion) -> None:
    assert parse_version(value) == expected


@pytest.mark.parametrize("value", ["AC9999", "R99", 1999])
def test_parse_version_rejects_unknown(value) -> None:
    with pytest.raises(ValueError, match="unsupported DXF version"):
        parse_version(value)


def test_version_context_gates_slots() -> None:
    elevation = LINE.slot("elevation")
    lineweight = LINE.slot("lineweight")

    r11_flat = VersionContext.create("R11", flatland=True)
    r11 = VersionContext.create("R11")
    r2004 = VersionContext.create("AC1018")

    assert r11_flat.flatland
    assert r11_flat.applies(elevation)
    assert not r11.applies(elevation)
    assert not r2004.applies(elevation)
    assert r2004.applies(lineweight)
    assert not r11_flat.applies(lineweight)
    assert r2004.supports(DXFVersion.R2000, DXFVersion.R2004)
    assert not r2004.supports(None, DXFVersion.R2000)


def test_version_context_from_acadver() -> None:
    context = VersionContext.from_acadver(" ac1015", flatland=True)

    assert context.version is DXFVersion.R2000
    assert context.flatland
    with pytest.raises(ValueError, match="ACADVER"):
        VersionContext.from_acadver("R2000")


def test_version_context_rejects_unknown_flags() -> None:
    with pytest.raises(ValueError, match="unknown modal flags"):
        VersionContext(DXFVersion.R12, frozenset({"wireframe"}))
