"""Entity catalogue: one EntitySpec per sync job.

Each spec says where the items come from, which fields a payload may carry
(an explicit allow-list, never a pass-through), how relations and the
natural key are resolved, which fields the job owns for change detection,
and whether missing records may be created.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from election_sync.lib.reconciler.relations import composite_key
from election_sync.lib.source.parser import SourceShape

Item = dict[str, Any]
Resolved = dict[str, str | None]


def _nested(item: Item, *path: str) -> Any:
    """Follow ``path`` through nested dicts, returning None on any gap."""
    value: Any = item
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


@dataclass(frozen=True)
class RelationLookup:
    """A foreign key resolved through a relation cache.

    Attributes:
        field: Payload field receiving the resolved id.
        relation: Relation cache name (``parties``, ``provinces``, ``areas``).
        label: Word used in "not found" warnings.
        key: Builds the natural key from the item and the ids resolved so far.
        describe: Human-readable key for warnings.
        warn_when_unkeyed: Warn even when ``key`` returns None.
    """

    field: str
    relation: str
    label: str
    key: Callable[[Item, Resolved], str | None]
    describe: Callable[[Item], str]
    warn_when_unkeyed: bool = True


@dataclass(frozen=True)
class NaturalKey:
    """Store field used to find an existing record, and how to get its value."""

    field: str
    value: Callable[[dict[str, Any], Item], Any]


@dataclass(frozen=True)
class EntitySpec:
    """Configuration of one sync job."""

    name: str
    description: str
    source_setting: str
    collection: str
    build_payload: Callable[[Item, Resolved], dict[str, Any]]
    owned_fields: tuple[str, ...]
    label: Callable[[Item], str]
    natural_key: NaturalKey | None = None
    create_allowed: bool = True
    source_shape: SourceShape = SourceShape.FIELD
    source_field: str | None = None
    paginated: bool = False
    params: dict[str, Any] = field(default_factory=dict)
    relations: tuple[RelationLookup, ...] = ()
    validate: Callable[[Item], str | None] | None = None
    change_note: Callable[[dict[str, Any], dict[str, Any]], str] | None = None

    @property
    def singleton(self) -> bool:
        """True when the collection holds one record and lookups take the first one."""
        return self.natural_key is None


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------

_BY_NAME = NaturalKey("name", lambda payload, item: item.get("name"))


def _item_name(item: Item) -> str:
    return str(item.get("name"))


def _party_name(item: Item) -> str:
    return str(_nested(item, "party", "name"))


def _votes_note(existing: dict[str, Any], payload: dict[str, Any]) -> str:
    return f"Votes: {existing.get('totalVotes')} -> {payload.get('totalVotes')}"


_PARTY_BY_NAME = RelationLookup(
    field="party",
    relation="parties",
    label="Party",
    key=lambda item, resolved: _nested(item, "party", "name"),
    describe=_party_name,
)


def _statistics_payload(item: Item) -> dict[str, Any]:
    return {
        "goodVotes": _nested(item, "statistics", "goodVotes"),
        "totalVotes": _nested(item, "statistics", "totalVotes"),
        "invalidVotes": _nested(item, "statistics", "invalidVotes"),
        "noVotes": _nested(item, "statistics", "noVotes"),
        "eligibleVoters": _nested(item, "statistics", "eligibleVoters"),
        "voterTurnoutPercentage": _nested(item, "statistics", "voterTurnoutPercentage"),
        "stationsReported": _nested(item, "coverage", "stationsReported"),
        "totalStations": _nested(item, "coverage", "totalStations"),
        "percentage": _nested(item, "coverage", "percentage"),
    }


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


def _province_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "code": item.get("code"),
        "region": item.get("region"),
    }


PROVINCES = EntitySpec(
    name="provinces",
    description="Province master data (create-only)",
    source_setting="source_provinces_url",
    collection="provinces",
    source_field="provinces",
    params={"limit": 1000},
    build_payload=_province_payload,
    natural_key=_BY_NAME,
    owned_fields=(),
    label=_item_name,
)


def _party_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "code": item.get("code"),
        "abbreviation": item.get("abbreviation"),
        "color": item.get("color"),
        "logoUrl": item.get("logoUrl"),
        "totalCandidates": item.get("totalCandidates"),
    }


PARTIES = EntitySpec(
    name="parties",
    description="Party master data",
    source_setting="source_parties_url",
    collection="parties",
    source_field="parties",
    params={"limit": 1000},
    build_payload=_party_payload,
    natural_key=_BY_NAME,
    owned_fields=("code", "abbreviation", "color", "logoUrl", "totalCandidates"),
    label=_item_name,
)


def _area_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "number": item.get("number"),
        "eligibleVoters": item.get("eligibleVoters"),
        "province": resolved.get("province"),
    }


AREAS = EntitySpec(
    name="areas",
    description="Election areas (constituencies)",
    source_setting="source_areas_url",
    collection="areas",
    source_field="electionAreas",
    paginated=True,
    relations=(
        RelationLookup(
            field="province",
            relation="provinces",
            label="Province",
            key=lambda item, resolved: _nested(item, "province", "name"),
            describe=lambda item: str(_nested(item, "province", "name")),
        ),
    ),
    build_payload=_area_payload,
    natural_key=_BY_NAME,
    owned_fields=("eligibleVoters", "province", "number"),
    label=_item_name,
)


def _candidate_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "number": item.get("number"),
        "name": item.get("name"),
        "provinceCode": item.get("provinceCode"),
        "provinceName": item.get("provinceName"),
        "areaNumber": item.get("areaNumber"),
        "totalVotes": item.get("totalVotes"),
        "rank": item.get("rank"),
        "percentage": item.get("percentage"),
        "party": resolved.get("party"),
        "province": resolved.get("province"),
    }


CANDIDATES = EntitySpec(
    name="candidates",
    description="Constituency candidates with vote totals",
    source_setting="source_candidates_url",
    collection="candidates",
    source_field="candidates",
    paginated=True,
    relations=(
        _PARTY_BY_NAME,
        RelationLookup(
            field="province",
            relation="provinces",
            label="Province",
            key=lambda item, resolved: item.get("provinceName"),
            describe=lambda item: str(item.get("provinceName")),
        ),
    ),
    build_payload=_candidate_payload,
    natural_key=_BY_NAME,
    owned_fields=("totalVotes", "rank", "percentage", "province"),
    label=_item_name,
    change_note=_votes_note,
)


def _area_lookup_key(item: Item, resolved: Resolved) -> str | None:
    province_id = resolved.get("province")
    area_number = _nested(item, "electionArea", "areaNumber")
    if not province_id or not area_number:
        return None
    return composite_key(province_id, area_number)


def _candidate_profile_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "title": item.get("title"),
        "firstName": item.get("firstName"),
        "lastName": item.get("lastName"),
        "photoUrl": item.get("photoUrl"),
        "active": item.get("active"),
        "number": item.get("number"),
        "provinceCode": _nested(item, "province", "code"),
        "provinceName": _nested(item, "province", "name"),
        "areaNumber": _nested(item, "electionArea", "areaNumber"),
        "party": resolved.get("party"),
        "province": resolved.get("province"),
        "area": resolved.get("area"),
    }


CANDIDATE_PROFILES = EntitySpec(
    name="candidate-profiles",
    description="Candidate profile fields (photo, names, relations)",
    source_setting="source_candidates_static_url",
    collection="candidates",
    source_field="candidates",
    paginated=True,
    relations=(
        _PARTY_BY_NAME,
        RelationLookup(
            field="province",
            relation="provinces",
            label="Province",
            key=lambda item, resolved: _nested(item, "province", "name"),
            describe=lambda item: str(_nested(item, "province", "name")),
        ),
        RelationLookup(
            field="area",
            relation="areas",
            label="Area",
            key=_area_lookup_key,
            describe=lambda item: f"{_nested(item, 'province', 'name')} #{_nested(item, 'electionArea', 'areaNumber')}",
            warn_when_unkeyed=False,
        ),
    ),
    build_payload=_candidate_profile_payload,
    natural_key=_BY_NAME,
    owned_fields=("title", "firstName", "lastName", "photoUrl", "active", "party", "province", "area"),
    label=_item_name,
    change_note=lambda existing, payload: "Profile Updated",
)


def _partylist_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "number": item.get("number"),
        "title": item.get("title"),
        "firstName": item.get("firstName"),
        "lastName": item.get("lastName"),
        "pmCandidateRank": item.get("pmCandidateRank"),
        "active": item.get("active"),
        "party": resolved.get("party"),
    }


PARTYLIST = EntitySpec(
    name="partylist",
    description="Party-list members",
    source_setting="source_partylist_url",
    collection="partylist",
    source_field="partyLists",
    paginated=True,
    relations=(_PARTY_BY_NAME,),
    build_payload=_partylist_payload,
    natural_key=_BY_NAME,
    owned_fields=("number", "title", "firstName", "lastName", "pmCandidateRank", "active", "party"),
    label=_item_name,
)


def _partylist_result_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "totalVotes": item.get("totalVotes"),
        "automaticSeats": item.get("automaticSeats"),
        "remainder": item.get("remainder"),
        "remainderSeats": item.get("remainderSeats"),
        "totalSeats": item.get("totalSeats"),
        "percentage": item.get("percentage"),
        "party": resolved.get("party"),
    }


PARTYLIST_RESULTS = EntitySpec(
    name="partylist-results",
    description="Party-list seat allocation per party",
    source_setting="source_partylist_results_url",
    collection="partylist_results",
    source_field="parties",
    relations=(_PARTY_BY_NAME,),
    build_payload=_partylist_result_payload,
    natural_key=NaturalKey("party", lambda payload, item: payload.get("party")),
    owned_fields=("totalVotes", "automaticSeats", "remainder", "remainderSeats", "totalSeats", "percentage"),
    label=_party_name,
    change_note=_votes_note,
)


def _option(item: Item, code: str) -> dict[str, Any]:
    for option in item.get("options") or []:
        if isinstance(option, dict) and option.get("optionCode") == code:
            return option
    return {}


def _referendum_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    agree = _option(item, "agree")
    disagree = _option(item, "disagree")
    return {
        "number": item.get("questionNumber"),
        "title": item.get("questionText"),
        "agreeTotalVotes": agree.get("totalVotes", 0),
        "agreePercentage": agree.get("percentage", 0),
        "agreeRank": agree.get("rank", 0),
        "disagreeTotalVotes": disagree.get("totalVotes", 0),
        "disagreePercentage": disagree.get("percentage", 0),
        "disagreeRank": disagree.get("rank", 0),
        "goodVotes": item.get("goodVotes"),
        "totalVotes": item.get("totalVotes"),
        "invalidVotes": item.get("invalidVotes"),
        "noVotes": item.get("noVotes"),
    }


REFERENDUM = EntitySpec(
    name="referendum",
    description="Referendum questions with agree/disagree tallies",
    source_setting="source_referendum_url",
    collection="referendum",
    source_field="questions",
    build_payload=_referendum_payload,
    natural_key=NaturalKey("number", lambda payload, item: item.get("questionNumber")),
    owned_fields=(
        "agreeTotalVotes",
        "agreePercentage",
        "agreeRank",
        "disagreeTotalVotes",
        "disagreePercentage",
        "disagreeRank",
        "totalVotes",
        "title",
    ),
    label=lambda item: f"Q{item.get('questionNumber')}",
    change_note=lambda existing, payload: f"Total: {existing.get('totalVotes')} -> {payload.get('totalVotes')}",
)


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


PROVINCE_STATISTICS = EntitySpec(
    name="province-statistics",
    description="Realtime turnout and counting coverage per province (update-only)",
    source_setting="source_province_statistics_url",
    collection="provinces",
    source_shape=SourceShape.LIST,
    build_payload=lambda item, resolved: _statistics_payload(item),
    natural_key=NaturalKey("name", lambda payload, item: item.get("provinceName")),
    owned_fields=("goodVotes", "totalVotes", "stationsReported", "percentage"),
    create_allowed=False,
    label=lambda item: str(item.get("provinceName")),
    change_note=_votes_note,
)


def _score_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": item.get("name"),
        "totalVotes": item.get("totalVotes"),
        "rank": item.get("rank"),
        "percentage": item.get("percentage"),
    }


SCORES = EntitySpec(
    name="scores",
    description="Realtime candidate vote totals (update-only)",
    source_setting="source_score_url",
    collection="candidates",
    source_field="candidates",
    paginated=True,
    build_payload=_score_payload,
    natural_key=_BY_NAME,
    owned_fields=("totalVotes", "rank", "percentage"),
    create_allowed=False,
    label=_item_name,
    change_note=_votes_note,
)


def _national_party_payload(item: Item, resolved: Resolved) -> dict[str, Any]:
    return {
        "name": _nested(item, "party", "name"),
        "totalVotes": item.get("totalVotes"),
        "constituencySeats": item.get("constituencySeats"),
        "partyListSeats": item.get("partyListSeats"),
        "totalSeats": item.get("totalSeats"),
        "percentage": item.get("percentage"),
    }


NATIONAL_PARTIES = EntitySpec(
    name="national-parties",
    description="Realtime national vote and seat totals per party",
    source_setting="source_national_summary_realtime_url",
    collection="parties",
    source_field="parties",
    build_payload=_national_party_payload,
    natural_key=NaturalKey("name", lambda payload, item: payload.get("name")),
    owned_fields=("totalVotes", "constituencySeats", "partyListSeats", "totalSeats", "percentage"),
    label=_party_name,
    change_note=_votes_note,
)


def _validate_national_statistics(item: Item) -> str | None:
    if not isinstance(item.get("statistics"), dict) or not isinstance(item.get("coverage"), dict):
        return "Invalid data structure received"
    return None


NATIONAL_STATISTICS = EntitySpec(
    name="national-statistics",
    description="Realtime national turnout and counting coverage (single record)",
    source_setting="source_national_statistics_url",
    collection="national",
    source_shape=SourceShape.OBJECT,
    build_payload=lambda item, resolved: _statistics_payload(item),
    validate=_validate_national_statistics,
    owned_fields=("goodVotes", "stationsReported", "percentage"),
    label=lambda item: "National Stats",
    change_note=lambda existing, payload: f"Turnout: {payload.get('voterTurnoutPercentage')}%",
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_ENTITIES: dict[str, EntitySpec] = {}


def register_entity(spec: EntitySpec) -> None:
    """Register an entity spec under its name.

    Args:
        spec: The spec to register.
    """
    if spec.name in _ENTITIES:
        logger.warning(f"Overwriting existing entity spec {spec.name!r}")
    _ENTITIES[spec.name] = spec


def get_entity(name: str) -> EntitySpec:
    """Get an entity spec by name.

    Raises:
        ValueError: If the entity is not registered.
    """
    spec = _ENTITIES.get(name)
    if spec is None:
        msg = f"Unknown entity: {name!r}. Available: {list(_ENTITIES.keys())}"
        raise ValueError(msg)
    return spec


def list_entities() -> list[EntitySpec]:
    """Return every registered spec in registration order."""
    return list(_ENTITIES.values())


for _spec in (
    PROVINCES,
    PARTIES,
    AREAS,
    CANDIDATES,
    CANDIDATE_PROFILES,
    PARTYLIST,
    PARTYLIST_RESULTS,
    REFERENDUM,
    PROVINCE_STATISTICS,
    SCORES,
    NATIONAL_PARTIES,
    NATIONAL_STATISTICS,
):
    register_entity(_spec)
