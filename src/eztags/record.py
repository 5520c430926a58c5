from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ChainNotTerminated

Point3D = tuple[float, float, float]


@dataclass
class Record:
    dxftype: str
    dxf: dict[str, Any]
    handle: int | None = None
    soft_owner: int | None = None
    hard_owner: int | None = None
    next: Optional["Record"] = field(default=None, repr=False, compare=False)
    released: bool = field(default=False, repr=False, compare=False)
    owner: object | None = field(default=None, repr=False, compare=False)

    def __getitem__(self, name: str) -> Any:
        return self.dxf[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self.dxf:
            raise KeyError(f"{self.dxftype} has no field {name!r}")
        self.dxf[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self.dxf

    def get(self, name: str, default: Any = None) -> Any:
        return self.dxf.get(name, default)

    @property
    def linked(self) -> bool:
        return self.next is not None

    def release(self) -> None:
        """Dispose of the record. A record still pointing at a chain
        successor cannot be released, and a record owned by a chain is
        released through `RecordChain.free` or `RecordChain.free_all`."""
        label = self.dxftype if self.handle is None else f"{self.dxftype} {self.handle:X}"
        if self.next is not None:
            raise ChainNotTerminated(f"{label} still links to the next record")
        if self.owner is not None:
            raise ValueError(f"{label} is owned by a chain and must be freed through it")
        if self.released:
            raise RuntimeError(f"{self.dxftype} record was already released")
        self.dxf.clear()
        self.released = True

    def to_points(self) -> list[Point3D]:
        if self.dxftype == "LINE":
            return [self.dxf["start"], self.dxf["end"]]
        if self.dxftype == "POINT":
            return [self.dxf["location"]]
        if self.dxftype == "CIRCLE":
            cx, cy, cz = self.dxf["center"]
            radius = self.dxf["radius"]
            return [(cx + radius, cy, cz), (cx, cy + radius, cz), (cx - radius, cy, cz), (cx, cy - radius, cz)]
        if self.dxftype == "LEADER":
            return list(self.dxf.get("vertices", []))
        raise NotImplementedError(f"to_points is not supported for {self.dxftype}")
