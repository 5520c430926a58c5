from __future__ import annotations

import importlib
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from .kinds import COLOR_BYLAYER, DEFAULT_DIMSTYLE, DEFAULT_LAYER, DEFAULT_LINETYPE
from .record import Point3D, Record

logger = logging.getLogger(__name__)

DXF_EXTRA = "dxf"


@dataclass(frozen=True)
class ConvertResult:
    output_path: str
    total_records: int
    written_records: int
    skipped_records: int
    skipped_by_type: dict[str, int]


def to_dxf(
    records: Iterable[Record],
    output_path: str,
    *,
    dxf_version: str = "R2010",
    strict: bool = False,
) -> ConvertResult:
    """Write decoded records into a complete DXF document using ezdxf.

    Records of kinds ezdxf has no builder for here, released records and
    records ezdxf rejects are counted in ``skipped_by_type``. With
    ``strict=True`` any skip raises `ValueError` and no file is written.
    """
    ezdxf = _load_ezdxf()
    dxf_doc = ezdxf.new(dxfversion=dxf_version)
    modelspace = dxf_doc.modelspace()

    written = 0
    skipped: Counter[str] = Counter()
    for record in records:
        if _add_record(dxf_doc, modelspace, record):
            written += 1
        else:
            skipped[record.dxftype] += 1

    if strict and skipped:
        details = ", ".join(f"{kind}:{count}" for kind, count in sorted(skipped.items()))
        raise ValueError(f"failed to convert {sum(skipped.values())} records ({details})")

    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(target))
    logger.debug("wrote %d records to %s, skipped %s", written, target, dict(skipped))

    return ConvertResult(
        output_path=str(target),
        total_records=written + sum(skipped.values()),
        written_records=written,
        skipped_records=sum(skipped.values()),
        skipped_by_type=dict(sorted(skipped.items())),
    )


def _load_ezdxf():
    try:
        return importlib.import_module("ezdxf")
    except ImportError as exc:
        raise ImportError(
            f'to_dxf needs ezdxf; install it with `pip install "eztags[{DXF_EXTRA}]"`.'
        ) from exc


def _add_record(dxf_doc: Any, modelspace: Any, record: Record) -> bool:
    builder = _BUILDERS.get(record.dxftype)
    if builder is None or record.released:
        return False
    try:
        return builder(dxf_doc, modelspace, record)
    except (TypeError, ValueError, KeyError) as exc:
        logger.debug("skipping %s record: %s", record.dxftype, exc)
        return False


def _add_line(dxf_doc: Any, modelspace: Any, record: Record) -> bool:
    modelspace.add_line(_vertex(record, "start"), _vertex(record, "end"), dxfattribs=_attribs(record))
    return True


def _add_point(dxf_doc: Any, modelspace: Any, record: Record) -> bool:
    modelspace.add_point(_vertex(record, "location"), dxfattribs=_attribs(record))
    return True


def _add_circle(dxf_doc: Any, modelspace: Any, record: Record) -> bool:
    modelspace.add_circle(_vertex(record, "center"), float(record["radius"]), dxfattribs=_attribs(record))
    return True


def _add_leader(dxf_doc: Any, modelspace: Any, record: Record) -> bool:
    vertices = record.to_points()
    if len(vertices) < 2:
        return False
    dimstyle = record.get("dimstyle") or DEFAULT_DIMSTYLE
    # new ezdxf documents only define "Standard"
    if not dxf_doc.dimstyles.has_entry(dimstyle):
        dimstyle = "Standard"
    modelspace.add_leader(vertices, dimstyle=dimstyle, dxfattribs=_attribs(record))
    return True


_BUILDERS: dict[str, Callable[[Any, Any, Record], bool]] = {
    "LINE": _add_line,
    "POINT": _add_point,
    "CIRCLE": _add_circle,
    "LEADER": _add_leader,
}


def _attribs(record: Record) -> dict[str, Any]:
    attribs: dict[str, Any] = {}
    if record.get("layer", DEFAULT_LAYER) != DEFAULT_LAYER:
        attribs["layer"] = record["layer"]
    if record.get("linetype", DEFAULT_LINETYPE) != DEFAULT_LINETYPE:
        attribs["linetype"] = record["linetype"]
    aci = _aci(record.get("color", COLOR_BYLAYER))
    if aci is not None:
        attribs["color"] = aci
    if record.get("true_color"):
        attribs["true_color"] = record["true_color"] & 0xFFFFFF
    return attribs


def _aci(color: int | None) -> int | None:
    """Explicit ACI colour, or ``None`` for BYBLOCK, BYLAYER and out-of-range values."""
    if color is None or not 1 <= color <= 255:
        return None
    return color


def _vertex(record: Record, name: str) -> Point3D:
    x, y, z = record[name]
    return (float(x), float(y), float(z))
