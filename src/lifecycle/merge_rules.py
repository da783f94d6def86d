"""Keyed-array declarations per entity type.

Each entry maps a dotted field path (array elements add no path segment,
so ``goals.metrics`` is the ``metrics`` list inside every goal) to the
rule used when a partial update carries that array.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from src.specs.common.enums import EntityType


@dataclass(frozen=True)
class ArrayRule:
    key: Optional[str] = None

    @property
    def is_union(self) -> bool:
        return self.key is None


def keyed(field: str) -> ArrayRule:
    return ArrayRule(key=field)


# Arrays of scalars that grow by de-duplicated append instead of replacement
UNION = ArrayRule()


_PLAN_RULES: Dict[str, ArrayRule] = {
    "timeline": keyed("date"),
    "contentStrategy.pillars": keyed("name"),
}

MERGE_RULES: Dict[EntityType, Dict[str, ArrayRule]] = {
    EntityType.BRAND: {
        "guidelines.keyMessages": keyed("audienceSegment"),
    },
    EntityType.CAMPAIGN: {
        "goals": keyed("type"),
        "audience": keyed("segment"),
        "contentMix": keyed("category"),
        "majorMilestones": keyed("description"),
        "performanceMetrics": keyed("metricName"),
    },
    EntityType.MASTER_PLAN: _PLAN_RULES,
    EntityType.MICRO_PLAN: _PLAN_RULES,
    EntityType.CONTENT: {
        "keywords": UNION,
    },
}


def rules_for(entity_type: EntityType) -> Mapping[str, ArrayRule]:
    return MERGE_RULES.get(EntityType(entity_type), {})
