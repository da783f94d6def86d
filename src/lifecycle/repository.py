"""
Typed access to one container of the document store.

Every raw document read from the store passes through the normalizer
before business logic sees it; every update goes through the structural
merge and is validated against the strict schema before it is written.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from src.lifecycle.merge import KEEP, Clear, Replace, clean_value, merge
from src.lifecycle.merge_rules import rules_for
from src.lifecycle.normalizer import load_document
from src.lifecycle.state_machine import machine_for
from src.shared.document_store import DocumentStore, Filters
from src.shared.logging_utils import debug as log_debug, info as log_info
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.datetime_utils import utc_now
from src.specs.common.errors import ResourceNotFoundError, ValidationError

M = TypeVar("M", bound=BaseDocument)

ModelResolver = Callable[[Mapping[str, Any]], Type[BaseDocument]]

# A guard runs against the merged candidate before a state change is applied
TransitionGuard = Callable[[BaseDocument, str], None]

# Fields owned by the engine; partial updates cannot set them
PROTECTED_FIELDS = frozenset(
    {"id", "createdAt", "version", "isActive", "previousVersionId", "rootId", "type"}
)


def new_document_id() -> str:
    return uuid.uuid4().hex


def validate_model(model: Type[M], body: Mapping[str, Any]) -> M:
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"{model.__name__} failed validation",
            details={
                "errors": [
                    {"loc": list(e.get("loc") or ()), "type": e.get("type"), "msg": e.get("msg")}
                    for e in exc.errors()
                ]
            },
        ) from exc


class DocumentRepository(Generic[M]):
    def __init__(
        self,
        store: DocumentStore,
        model: Union[Type[M], ModelResolver],
        container: Optional[str] = None,
        resource_name: Optional[str] = None,
    ):
        self.store = store
        if isinstance(model, type):
            self._resolve: ModelResolver = lambda _raw, _m=model: _m
            self.container = container or model.container
            self.resource_name = resource_name or model.__name__.replace("Document", "")
        else:
            self._resolve = model
            if not container:
                raise ValueError("A container is required when the model is resolved per document")
            self.container = container
            self.resource_name = resource_name or container

    def load(self, raw: Mapping[str, Any]) -> M:
        return load_document(self._resolve(raw), raw)  # type: ignore[return-value]

    def find_by_id(self, doc_id: str) -> Optional[M]:
        raw = self.store.get(self.container, doc_id)
        return self.load(raw) if raw is not None else None

    def get(self, doc_id: str) -> M:
        doc = self.find_by_id(doc_id)
        if doc is None:
            raise ResourceNotFoundError(self.resource_name, doc_id)
        return doc

    def find(self, filters: Optional[Filters] = None) -> List[M]:
        return [self.load(raw) for raw in self.store.find(self.container, filters)]

    def find_one(self, filters: Filters) -> Optional[M]:
        results = self.find(filters)
        return results[0] if results else None

    def insert(self, doc: M) -> M:
        self.store.insert(self.container, doc.to_document())
        log_info(doc.id, "store:insert", container=self.container)
        return doc

    def save(self, doc: M) -> M:
        body = doc.to_document()
        body.pop("id", None)
        if self.store.update_in_place(self.container, doc.id, body) is None:
            raise ResourceNotFoundError(self.resource_name, doc.id)
        log_debug(doc.id, "store:update", container=self.container)
        return doc

    def patch(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        if self.store.update_in_place(self.container, doc_id, fields) is None:
            raise ResourceNotFoundError(self.resource_name, doc_id)

    def delete(self, doc_id: str) -> bool:
        removed = self.store.delete_hard(self.container, doc_id)
        log_info(doc_id, "store:delete", container=self.container, removed=removed)
        return removed

    def merge_update(
        self,
        existing: M,
        partial: Mapping[str, Any],
        actor: str,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
        guard: Optional[TransitionGuard] = None,
    ) -> M:
        """Merge ``partial`` into ``existing`` and validate; nothing is written.

        A changed ``state`` is applied through the entity's state machine,
        after ``guard`` has inspected the merged candidate.
        """
        stamp = now or utc_now()
        payload = {k: v for k, v in dict(partial or {}).items() if k not in PROTECTED_FIELDS}
        dropped = sorted(set(partial or {}) & PROTECTED_FIELDS)
        if dropped:
            log_debug(existing.id, "merge:protected_fields_ignored", fields=dropped)

        requested_state = payload.pop("state", None)
        if isinstance(requested_state, Clear):
            raise ValidationError(f"{self.resource_name} state cannot be cleared")
        requested_state = None if requested_state is KEEP else clean_value(requested_state)
        meta_partial = payload.pop("stateMetadata", None)
        if isinstance(meta_partial, Clear):
            raise ValidationError(f"{self.resource_name} stateMetadata cannot be cleared")
        if isinstance(meta_partial, Replace):
            meta_partial = meta_partial.value
        if meta_partial is None or meta_partial is KEEP:
            meta_partial = {}
        if not isinstance(meta_partial, Mapping):
            raise ValidationError(f"{self.resource_name} stateMetadata must be an object")
        payload["stateMetadata"] = merge(
            {"updatedBy": actor, "comments": comment, "updatedAt": stamp},
            meta_partial,
        )
        if comment is None and "comments" not in meta_partial:
            payload["stateMetadata"].pop("comments", None)
        payload["updatedAt"] = stamp

        model = type(existing)
        merged = merge(existing.to_document(), payload, rules_for(model.entity_type))
        candidate = validate_model(model, merged)

        current_state = getattr(existing, "state", None)
        target = getattr(requested_state, "value", requested_state)
        if target is None or target == current_state:
            return candidate

        machine = machine_for(model.entity_type)
        if machine is None:
            raise ValidationError(f"{self.resource_name} has no lifecycle state")
        machine.validate(current_state, target)
        if guard is not None:
            guard(candidate, target)
        return machine.transition(candidate, target, actor, comment, stamp)
