"""
Repository wiring and creation helpers shared by the entity services.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Type

from src.lifecycle.hierarchy import HierarchyResolver
from src.lifecycle.merge import KEEP, clean_value
from src.lifecycle.repository import PROTECTED_FIELDS, DocumentRepository, M, new_document_id, validate_model
from src.lifecycle.state_machine import machine_for
from src.lifecycle.versioning import VersionChainManager
from src.shared.document_store import DocumentStore
from src.specs.common.datetime_utils import utc_now
from src.specs.common.errors import ValidationError
from src.specs.documents.brand_document_spec import BrandDocument
from src.specs.documents.campaign_document_spec import CampaignDocument
from src.specs.documents.content_document_spec import ContentDocument
from src.specs.documents.plan_document_spec import PlanDocument, plan_model_for

DEFAULT_ACTOR = "system"

# Fields a creation payload may not set; the constructor stamps them
_CREATION_OWNED = PROTECTED_FIELDS | {"updatedAt", "state", "stateMetadata"}

# Outside draft only the workflow itself may move
_LIFECYCLE_FIELDS = frozenset({"state", "stateMetadata"})


@dataclass
class Repositories:
    brands: DocumentRepository[BrandDocument]
    campaigns: VersionChainManager[CampaignDocument]
    plans: DocumentRepository[PlanDocument]
    contents: VersionChainManager[ContentDocument]
    hierarchy: HierarchyResolver

    @classmethod
    def from_store(cls, store: DocumentStore) -> "Repositories":
        brands = DocumentRepository(store, BrandDocument)
        campaigns = VersionChainManager(DocumentRepository(store, CampaignDocument))
        plans = DocumentRepository(store, plan_model_for, container=PlanDocument.container, resource_name="Plan")
        contents = VersionChainManager(DocumentRepository(store, ContentDocument))
        return cls(
            brands=brands,
            campaigns=campaigns,
            plans=plans,
            contents=contents,
            hierarchy=HierarchyResolver(brands, campaigns, plans, contents),
        )


def new_document(
    model: Type[M],
    payload: Mapping[str, Any],
    actor: str = DEFAULT_ACTOR,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
    **fields: Any,
) -> M:
    """Build a validated document for first insert.

    Engine-owned fields in ``payload`` are ignored: the id is generated,
    timestamps and stateMetadata are stamped with ``actor``, and lifecycle
    entities start in their workflow's initial state. ``fields`` are set last.
    """
    stamp = now or utc_now()
    body = {k: v for k, v in clean_value(dict(payload or {})).items() if k not in _CREATION_OWNED}
    body.update(
        id=new_document_id(),
        createdAt=stamp,
        updatedAt=stamp,
        stateMetadata={"version": 1, "updatedBy": actor, "comments": comment, "updatedAt": stamp},
    )
    machine = machine_for(model.entity_type)
    if machine is not None:
        body["state"] = machine.initial
    body.update(fields)
    return validate_model(model, body)


def require_draft_for_edits(existing: Any, partial: Mapping[str, Any], resource_name: str) -> None:
    """Reject content edits to a document that has left its draft state.

    State changes and stateMetadata stamps stay allowed; engine-owned
    fields are ignored.
    """
    state = getattr(existing, "state", None)
    if state is None or state == "draft":
        return
    edited = sorted(
        key
        for key, value in (partial or {}).items()
        if key not in _LIFECYCLE_FIELDS and key not in PROTECTED_FIELDS and value is not None and value is not KEEP
    )
    if edited:
        raise ValidationError(
            f"Can only update {resource_name.lower()} in draft state",
            details={"id": existing.id, "state": state, "fields": edited},
        )


class EntityService:
    def __init__(self, repos: Repositories):
        self.repos = repos
