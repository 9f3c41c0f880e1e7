"""Extraction of agents, agencies and building details from listing payloads.

The extractor functions are pure. :class:`EntityExtractor` adds the per-run
deduplication and the best-effort upserts: a failed agent or agency write is
logged and reported back, and never stops the owning listing from syncing.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from propsync.infrastructure.db.connection import format_timestamp, utcnow
from propsync.infrastructure.db.repositories import AgencyRepository, AgentRepository
from propsync.infrastructure.http.records import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_str,
)
from propsync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AgentFields:
    external_id: str
    name: str
    name_l1: str | None = None
    phone: str | None = None
    email: str | None = None
    photo_url: str | None = None
    agency_external_id: str | None = None
    is_verified: bool = False
    is_trakheesi_verified: bool = False
    languages: list[str] = field(default_factory=list)
    agent_rating: float | None = None
    review_count: int | None = None
    experience_since: int | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, repr=False)

    def snapshot(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("raw_data", None)
        return data


@dataclass
class AgencyFields:
    external_id: str
    name: str
    name_l1: str | None = None
    logo_url: str | None = None
    license_number: str | None = None
    phone: str | None = None
    is_verified: bool = False
    total_agents: int | None = None
    product_score: float | None = None
    review_score: float | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, repr=False)

    def snapshot(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("raw_data", None)
        return data


@dataclass
class BuildingFields:
    name: str | None = None
    community: str | None = None
    sub_community: str | None = None
    developer: str | None = None
    completion_status: str | None = None
    completion_year: int | None = None
    total_floors: int | None = None
    total_units: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _block(raw: dict[str, Any], *keys: str) -> dict[str, Any] | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, dict) and value:
            return value
    return None


def _nested_url(value: Any) -> str | None:
    if isinstance(value, dict):
        return coerce_str(value.get("url"))
    return coerce_str(value)


def _normalize_name(value: Any) -> str | None:
    text = coerce_str(value)
    if text is None:
        return None
    return " ".join(text.split())


def _languages(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    names = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name") or item.get("title")
        text = coerce_str(item)
        if text:
            names.append(text)
    return names


def _phone(value: Any) -> str | None:
    if isinstance(value, dict):
        return coerce_str(value.get("mobile") or value.get("phone") or value.get("whatsapp"))
    return coerce_str(value)


def extract_agency(raw: dict[str, Any]) -> AgencyFields | None:
    """Return the agency block of ``raw`` or ``None`` when it has no id or name."""
    block = _block(raw, "agency", "broker")
    if block is None:
        return None
    external_id = coerce_str(block.get("externalID")) or coerce_str(block.get("id"))
    name = _normalize_name(block.get("name"))
    if not external_id or not name:
        return None
    return AgencyFields(
        external_id=external_id,
        name=name,
        name_l1=_normalize_name(block.get("name_l1")),
        logo_url=_nested_url(block.get("logo")),
        license_number=coerce_str(
            block.get("license_number") or block.get("licenseNumber") or block.get("orn")
        ),
        phone=_phone(block.get("phone") or block.get("phoneNumber")),
        is_verified=coerce_bool(block.get("is_verified", block.get("isVerified"))),
        total_agents=coerce_int(block.get("total_agents", block.get("agentsCount"))),
        product_score=coerce_float(block.get("product_score", block.get("productScore"))),
        review_score=coerce_float(block.get("review_score", block.get("reviewScore"))),
        raw_data=block,
    )


def extract_agent(raw: dict[str, Any]) -> AgentFields | None:
    """Return the listing agent of ``raw`` or ``None`` when it cannot be identified.

    A dedicated ``agent`` block is preferred; listings that only carry
    ``ownerID`` and ``contactName`` yield a minimal agent.
    """
    agency = _block(raw, "agency", "broker") or {}
    agency_id = coerce_str(agency.get("externalID")) or coerce_str(agency.get("id"))

    block = _block(raw, "agent", "contact")
    if block is None:
        external_id = coerce_str(raw.get("ownerID"))
        name = _normalize_name(raw.get("contactName"))
        if not external_id or not name:
            return None
        return AgentFields(
            external_id=external_id,
            name=name,
            phone=_phone(raw.get("phoneNumber")),
            agency_external_id=agency_id,
            raw_data={
                "ownerID": raw.get("ownerID"),
                "contactName": raw.get("contactName"),
                "phoneNumber": raw.get("phoneNumber"),
            },
        )

    external_id = coerce_str(block.get("externalID")) or coerce_str(block.get("id"))
    name = _normalize_name(block.get("name"))
    if not external_id or not name:
        return None
    return AgentFields(
        external_id=external_id,
        name=name,
        name_l1=_normalize_name(block.get("name_l1")),
        phone=_phone(block.get("phone") or block.get("phoneNumber")),
        email=coerce_str(block.get("email")),
        photo_url=_nested_url(block.get("photo") or block.get("image")),
        agency_external_id=agency_id,
        is_verified=coerce_bool(block.get("is_verified", block.get("isVerified"))),
        is_trakheesi_verified=coerce_bool(
            block.get("is_trakheesi_verified", block.get("isTrakheesiVerified"))
        ),
        languages=_languages(block.get("languages")),
        agent_rating=coerce_float(block.get("rating", block.get("agent_rating"))),
        review_count=coerce_int(block.get("review_count", block.get("reviewCount"))),
        experience_since=coerce_int(
            block.get("experience_since", block.get("experienceSince"))
        ),
        raw_data=block,
    )


def extract_building_info(raw: dict[str, Any]) -> BuildingFields:
    """Building and community details; every field may be ``None``."""
    block = _block(raw, "building", "project") or {}
    locations = [loc for loc in raw.get("location") or [] if isinstance(loc, dict)]
    by_level = {loc.get("level"): coerce_str(loc.get("name")) for loc in locations}

    developer = block.get("developer")
    if isinstance(developer, dict):
        developer = developer.get("name")

    return BuildingFields(
        name=coerce_str(block.get("name")) or by_level.get(3),
        community=by_level.get(2) or by_level.get(1),
        sub_community=by_level.get(3) if by_level.get(2) else None,
        developer=coerce_str(developer),
        completion_status=coerce_str(
            block.get("completion_status") or raw.get("completionStatus")
        ),
        completion_year=coerce_int(
            block.get("completion_year") or block.get("completionYear")
        ),
        total_floors=coerce_int(block.get("total_floors") or block.get("floors")),
        total_units=coerce_int(block.get("total_units") or block.get("units")),
    )


@dataclass
class EntityOutcome:
    agent: AgentFields | None = None
    agency: AgencyFields | None = None
    building: BuildingFields = field(default_factory=BuildingFields)
    new_agents: int = 0
    new_agencies: int = 0
    errors: list[str] = field(default_factory=list)


class EntityExtractor:
    """Extract related entities and upsert each distinct one once per run."""

    def __init__(
        self,
        agents: AgentRepository,
        agencies: AgencyRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.agents = agents
        self.agencies = agencies
        self.clock = clock
        self.seen_agents: set[str] = set()
        self.seen_agencies: set[str] = set()

    def upsert_related(self, raw: dict[str, Any]) -> EntityOutcome:
        outcome = EntityOutcome(
            agent=extract_agent(raw),
            agency=extract_agency(raw),
            building=extract_building_info(raw),
        )
        now = format_timestamp(self.clock())

        agency = outcome.agency
        if agency is not None and agency.external_id not in self.seen_agencies:
            try:
                self.agencies.upsert({**asdict(agency), "last_synced_at": now})
            except sqlite3.Error as exc:
                logger.warning(f"Agency upsert failed for {agency.external_id}: {exc}")
                outcome.errors.append(f"Agency {agency.external_id}: {exc}")
            else:
                self.seen_agencies.add(agency.external_id)
                outcome.new_agencies = 1

        agent = outcome.agent
        if agent is not None and agent.external_id not in self.seen_agents:
            try:
                self.agents.upsert({**asdict(agent), "last_synced_at": now})
            except sqlite3.Error as exc:
                logger.warning(f"Agent upsert failed for {agent.external_id}: {exc}")
                outcome.errors.append(f"Agent {agent.external_id}: {exc}")
            else:
                self.seen_agents.add(agent.external_id)
                outcome.new_agents = 1

        return outcome


__all__ = [
    "AgencyFields",
    "AgentFields",
    "BuildingFields",
    "EntityExtractor",
    "EntityOutcome",
    "extract_agency",
    "extract_agent",
    "extract_building_info",
]
