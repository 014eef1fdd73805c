"""Reconciler library: diff source items against stored records.

Public API:
    - Reconciler / reconcile_item: Per-item create/update/skip/fail engine
    - Verdict: Outcome of one item
    - EntitySpec: Sync job configuration
    - get_entity / list_entities / register_entity: Entity registry
    - RelationCache / RelationCaches: Run-scoped natural key → id caches
    - detect_field_changes: Owned-field diff
"""

from election_sync.lib.reconciler.differ import detect_field_changes, values_differ
from election_sync.lib.reconciler.engine import Reconciler, Verdict, reconcile_item
from election_sync.lib.reconciler.entities import (
    EntitySpec,
    NaturalKey,
    RelationLookup,
    get_entity,
    list_entities,
    register_entity,
)
from election_sync.lib.reconciler.relations import RelationCache, RelationCaches, composite_key

__all__ = [
    "EntitySpec",
    "NaturalKey",
    "Reconciler",
    "RelationCache",
    "RelationCaches",
    "RelationLookup",
    "Verdict",
    "composite_key",
    "detect_field_changes",
    "get_entity",
    "list_entities",
    "reconcile_item",
    "register_entity",
    "values_differ",
]
