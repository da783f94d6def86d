"""
Single inbound surface over the entity services, dispatched on entity type.

Agent tools and HTTP handlers call this instead of the individual services.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from src.lifecycle.merge import decode_tags
from src.services.base import DEFAULT_ACTOR, Repositories
from src.services.brand_service import BrandService
from src.services.campaign_service import CampaignService
from src.services.content_service import ContentService
from src.services.plan_service import PlanService
from src.shared.document_store import DocumentStore, get_document_store
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.enums import EntityType, UpdateMode
from src.specs.common.errors import ResourceNotFoundError, ValidationError
from src.specs.documents.content_document_spec import ContentDocument
from src.specs.documents.plan_document_spec import MasterPlanDocument, MicroPlanDocument

# Alternative spellings accepted from callers
_ENTITY_ALIASES: Dict[str, EntityType] = {
    "brands": EntityType.BRAND,
    "campaigns": EntityType.CAMPAIGN,
    "masterplan": EntityType.MASTER_PLAN,
    "masterplans": EntityType.MASTER_PLAN,
    "master-plan": EntityType.MASTER_PLAN,
    "microplan": EntityType.MICRO_PLAN,
    "microplans": EntityType.MICRO_PLAN,
    "micro-plan": EntityType.MICRO_PLAN,
    "contents": EntityType.CONTENT,
}

VERSIONED_TYPES = frozenset({EntityType.CAMPAIGN, EntityType.CONTENT})


def parse_entity_type(value: Any) -> EntityType:
    if isinstance(value, EntityType):
        return value
    text = str(value or "").strip()
    try:
        return EntityType(text)
    except ValueError:
        pass
    alias = _ENTITY_ALIASES.get(text.lower())
    if alias is None:
        raise ValidationError(
            f"Unknown entity type '{value}'",
            details={"allowed": [e.value for e in EntityType]},
        )
    return alias


def parse_update_mode(value: Any) -> UpdateMode:
    if isinstance(value, UpdateMode):
        return value
    if value is None or value == "":
        return UpdateMode.MUTATE
    if isinstance(value, bool):
        return UpdateMode.FORK if value else UpdateMode.MUTATE
    try:
        return UpdateMode(str(value).lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown update mode '{value}'", details={"allowed": [m.value for m in UpdateMode]}) from exc


class EntityGateway:
    def __init__(self, store: Optional[DocumentStore] = None):
        self.repos = Repositories.from_store(store if store is not None else get_document_store())
        self.brands = BrandService(self.repos)
        self.campaigns = CampaignService(self.repos)
        self.plans = PlanService(self.repos)
        self.contents = ContentService(self.repos)

    def _plan_of_kind(self, kind: EntityType, plan_id: str):
        plan = self.plans.get(plan_id)
        expected = MasterPlanDocument if kind == EntityType.MASTER_PLAN else MicroPlanDocument
        if not isinstance(plan, expected):
            raise ResourceNotFoundError(kind.value, plan_id)
        return plan

    def _require_versioned(self, kind: EntityType) -> None:
        if kind not in VERSIONED_TYPES:
            raise ValidationError(f"{kind.value} documents are not versioned")

    def create(
        self,
        entity_type: Any,
        payload: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> BaseDocument:
        kind = parse_entity_type(entity_type)
        if kind == EntityType.BRAND:
            return self.brands.create(payload, actor)
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.create(payload, actor, comment)
        if kind == EntityType.MASTER_PLAN:
            return self.plans.create_master_plan(payload, actor, comment)
        if kind == EntityType.MICRO_PLAN:
            return self.plans.create_micro_plan(payload, actor, comment)
        return self.contents.create(payload, actor, comment)

    def get(self, entity_type: Any, entity_id: str, version: Optional[int] = None) -> BaseDocument:
        """Fetch an entity; versioned entities resolve to the active version unless ``version`` is given."""
        kind = parse_entity_type(entity_type)
        if version is not None:
            self._require_versioned(kind)
            service = self.campaigns if kind == EntityType.CAMPAIGN else self.contents
            return service.get_version(entity_id, int(version))
        if kind == EntityType.BRAND:
            return self.brands.get(entity_id)
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.get(entity_id)
        if kind in (EntityType.MASTER_PLAN, EntityType.MICRO_PLAN):
            return self._plan_of_kind(kind, entity_id)
        return self.contents.get(entity_id)

    def update(
        self,
        entity_type: Any,
        entity_id: str,
        partial: Mapping[str, Any],
        mode: Any = UpdateMode.MUTATE,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> BaseDocument:
        kind = parse_entity_type(entity_type)
        update_mode = parse_update_mode(mode)
        partial = decode_tags(dict(partial or {}))
        if update_mode == UpdateMode.FORK:
            self._require_versioned(kind)
        if kind == EntityType.BRAND:
            return self.brands.update(entity_id, partial, actor, comment)
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.update(entity_id, partial, update_mode, actor, comment)
        if kind in (EntityType.MASTER_PLAN, EntityType.MICRO_PLAN):
            self._plan_of_kind(kind, entity_id)
            return self.plans.update(entity_id, partial, actor, comment)
        return self.contents.update(entity_id, partial, update_mode, actor, comment)

    def transition_state(
        self,
        entity_type: Any,
        entity_id: str,
        target: str,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> BaseDocument:
        kind = parse_entity_type(entity_type)
        if kind == EntityType.BRAND:
            raise ValidationError("Brands have no lifecycle state")
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.transition_state(entity_id, target, actor, comment)
        if kind in (EntityType.MASTER_PLAN, EntityType.MICRO_PLAN):
            self._plan_of_kind(kind, entity_id)
            return self.plans.transition_state(entity_id, target, actor, comment)
        return self.contents.transition_state(entity_id, target, actor, comment)

    def activate(self, entity_type: Any, entity_id: str, actor: str = DEFAULT_ACTOR) -> BaseDocument:
        """Activate a chain version (campaign, content) or a plan among its siblings."""
        kind = parse_entity_type(entity_type)
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.activate_version(entity_id, actor)
        if kind == EntityType.CONTENT:
            return self.contents.activate_version(entity_id, actor)
        if kind in (EntityType.MASTER_PLAN, EntityType.MICRO_PLAN):
            self._plan_of_kind(kind, entity_id)
            return self.plans.activate(entity_id, actor)
        raise ValidationError("Brands cannot be activated")

    def list_versions(self, entity_type: Any, entity_id: str) -> List[BaseDocument]:
        kind = parse_entity_type(entity_type)
        self._require_versioned(kind)
        if kind == EntityType.CAMPAIGN:
            return list(self.campaigns.list_versions(entity_id))
        return list(self.contents.list_versions(entity_id))

    def content_under(self, entity_type: Any, entity_id: str) -> List[ContentDocument]:
        return self.repos.hierarchy.content_under(parse_entity_type(entity_type), entity_id)

    def delete(self, entity_type: Any, entity_id: str) -> bool:
        kind = parse_entity_type(entity_type)
        if kind == EntityType.BRAND:
            return self.brands.delete(entity_id)
        if kind == EntityType.CAMPAIGN:
            return self.campaigns.delete(entity_id)
        if kind in (EntityType.MASTER_PLAN, EntityType.MICRO_PLAN):
            self._plan_of_kind(kind, entity_id)
            return self.plans.delete(entity_id)
        return self.contents.delete(entity_id)
