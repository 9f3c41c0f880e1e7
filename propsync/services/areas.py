"""Known Dubai areas and their provider location ids.

The areas are grouped in chunks of five for scheduled syncs, so a single
chunk stays small enough to finish within one run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Area:
    id: int
    name: str

    @property
    def slug(self) -> str:
        return re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")


AREA_CHUNKS: tuple[tuple[Area, ...], ...] = (
    (
        Area(36, "Dubai Marina"),
        Area(10, "Downtown Dubai"),
        Area(14, "Palm Jumeirah"),
        Area(87, "Jumeirah Beach Residence (JBR)"),
        Area(54, "Business Bay"),
    ),
    (
        Area(59, "Jumeirah Village Circle (JVC)"),
        Area(53, "Dubai Hills Estate"),
        Area(168, "Arabian Ranches"),
        Area(302, "Mohammed Bin Rashid City"),
        Area(117, "DIFC"),
    ),
    (
        Area(12, "Jumeirah Lake Towers (JLT)"),
        Area(67, "Dubai Sports City"),
        Area(295, "Dubai Silicon Oasis"),
        Area(279, "DAMAC Hills"),
        Area(835, "Sobha Hartland"),
    ),
    (
        Area(164, "Emirates Hills"),
        Area(386, "Town Square"),
        Area(105, "Al Barsha"),
        Area(268, "Motor City"),
        Area(23, "Jumeirah"),
    ),
    (
        Area(43, "Meydan City"),
        Area(368, "International City"),
        Area(79, "Dubai Investment Park"),
        Area(242, "Dubai Creek Harbour"),
        Area(1754, "Bluewaters Island"),
    ),
)

DUBAI_AREAS: tuple[Area, ...] = tuple(area for chunk in AREA_CHUNKS for area in chunk)


def list_areas() -> list[dict[str, object]]:
    return [{"id": area.id, "name": area.name, "slug": area.slug} for area in DUBAI_AREAS]


__all__ = ["AREA_CHUNKS", "Area", "DUBAI_AREAS", "list_areas"]
