from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import FieldSlot


class DXFVersion(IntEnum):
    R10 = 10
    R11 = 11
    R12 = 12
    R13 = 13
    R14 = 14
    R2000 = 2000
    R2002 = 2002
    R2004 = 2004
    R2007 = 2007
    R2008 = 2008
    R2009 = 2009
    R2010 = 2010
    R2013 = 2013
    R2018 = 2018


ACADVER_VERSIONS = {
    "AC1006": DXFVersion.R10,
    "AC1009": DXFVersion.R12,
    "AC1012": DXFVersion.R13,
    "AC1014": DXFVersion.R14,
    "AC1015": DXFVersion.R2000,
    "AC1018": DXFVersion.R2004,
    "AC1021": DXFVersion.R2007,
    "AC1024": DXFVersion.R2010,
    "AC1027": DXFVersion.R2013,
    "AC1032": DXFVersion.R2018,
}

FLATLAND = "flatland"
MODAL_FLAGS = frozenset({FLATLAND})


def parse_version(value: str | int | DXFVersion) -> DXFVersion:
    """Accept a `DXFVersion`, a release name such as ``"R2000"`` or a
    ``$ACADVER`` string such as ``"AC1015"``."""
    if isinstance(value, DXFVersion):
        return value
    if isinstance(value, int):
        try:
            return DXFVersion(value)
        except ValueError:
            raise ValueError(f"unsupported DXF version: {value}") from None
    name = str(value).strip().upper()
    if name in ACADVER_VERSIONS:
        return ACADVER_VERSIONS[name]
    try:
        return DXFVersion[name]
    except KeyError:
        raise ValueError(f"unsupported DXF version: {value}") from None


@dataclass(frozen=True)
class VersionContext:
    version: DXFVersion
    flags: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", parse_version(self.version))
        flags = frozenset(self.flags)
        unknown = flags - MODAL_FLAGS
        if unknown:
            raise ValueError(f"unknown modal flags: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "flags", flags)

    @classmethod
    def create(cls, version: str | int | DXFVersion, *, flatland: bool = False) -> "VersionContext":
        return cls(parse_version(version), frozenset({FLATLAND}) if flatland else frozenset())

    @classmethod
    def from_acadver(cls, acadver: str, *, flatland: bool = False) -> "VersionContext":
        """Context for a ``$ACADVER`` header value such as ``"AC1015"``."""
        try:
            version = ACADVER_VERSIONS[acadver.strip().upper()]
        except KeyError:
            raise ValueError(f"unsupported $ACADVER value: {acadver!r}") from None
        return cls.create(version, flatland=flatland)

    @property
    def flatland(self) -> bool:
        return FLATLAND in self.flags

    def supports(self, min_version: DXFVersion | None, max_version: DXFVersion | None = None) -> bool:
        if min_version is not None and self.version < min_version:
            return False
        if max_version is not None and self.version > max_version:
            return False
        return True

    def applies(self, slot: "FieldSlot") -> bool:
        # decode and encode both gate through here
        if not self.supports(slot.min_version, slot.max_version):
            return False
        return slot.flag is None or slot.flag in self.flags
