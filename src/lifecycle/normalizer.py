"""
Document normalization for loosely-typed stored documents.

Stored documents may carry dates as strings, extended-JSON wrappers or
empty objects, nulls where the schema expects defaults, and field names
from older releases. ``normalize`` repairs what it can without ever
failing; ``load_document`` validates the result against the strict schema
in three passes before giving up with ``CorruptDocumentError``.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.shared.logging_utils import debug as log_debug, warning as log_warning
from src.specs.common.datetime_utils import EPOCH, coerce_datetime_or_epoch
from src.specs.common.enums import EntityType
from src.specs.common.errors import CorruptDocumentError

M = TypeVar("M", bound=BaseModel)

DATE_FIELDS = frozenset(
    {
        "createdAt",
        "updatedAt",
        "startDate",
        "endDate",
        "scheduledFor",
        "publishedAt",
        "date",
        "start",
        "end",
        "expiresAt",
    }
)

# Arrays whose elements are dated records: field -> (label field, placeholder)
DATED_ARRAYS: Dict[str, Tuple[str, str]] = {
    "majorMilestones": ("description", "Untitled milestone"),
    "timeline": ("description", "Untitled event"),
}

# Cosmos system properties that never belong to the domain document
SYSTEM_FIELDS = frozenset({"_rid", "_self", "_etag", "_attachments", "_ts"})

_COMMON_LEGACY_KEYS: Dict[str, str] = {
    "_id": "id",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

LEGACY_KEYS: Dict[EntityType, Dict[str, str]] = {
    EntityType.CAMPAIGN: {"status": "state", "rootCampaignId": "rootId"},
    EntityType.CONTENT: {"rootContentId": "rootId"},
    EntityType.MASTER_PLAN: {"parentPlanId": "masterPlanId"},
    EntityType.MICRO_PLAN: {"parentPlanId": "masterPlanId"},
}

# Values used for required fields still missing after normalization
REQUIRED_DEFAULTS: Dict[str, Any] = {
    "updatedBy": "system",
    "stateMetadata": {"updatedBy": "system"},
    "dateRange": {},
}


def _rename_legacy_keys(doc: Dict[str, Any], entity_type: Optional[EntityType]) -> Dict[str, Any]:
    mapping = dict(_COMMON_LEGACY_KEYS)
    if entity_type is not None:
        mapping.update(LEGACY_KEYS.get(EntityType(entity_type), {}))
    for old, new in mapping.items():
        if old in doc:
            value = doc.pop(old)
            if doc.get(new) is None and value is not None:
                doc[new] = str(value) if new == "id" else value
    return doc


def _normalize_value(key: Optional[str], value: Any) -> Any:
    if key in DATE_FIELDS and value is not None:
        return coerce_datetime_or_epoch(value)
    if isinstance(value, Mapping):
        return {k: _normalize_value(k, v) for k, v in value.items()}
    if isinstance(value, list):
        if key in DATED_ARRAYS:
            return [_normalize_dated_element(key, item) for item in value]
        return [_normalize_value(None, item) for item in value]
    return value


def _normalize_dated_element(array_key: str, item: Any) -> Any:
    if not isinstance(item, Mapping):
        return item
    label_field, placeholder = DATED_ARRAYS[array_key]
    element = {k: _normalize_value(k, v) for k, v in item.items()}
    if not element.get(label_field):
        element[label_field] = placeholder
    return element


def normalize(raw: Mapping[str, Any], entity_type: Optional[EntityType] = None) -> Dict[str, Any]:
    """Coerce a stored document into a schema-friendly shape. Never raises."""
    doc = {k: copy.deepcopy(v) for k, v in dict(raw or {}).items() if k not in SYSTEM_FIELDS}
    doc = _rename_legacy_keys(doc, entity_type)
    return {k: _normalize_value(k, v) for k, v in doc.items()}


def strip_nulls(value: Any) -> Any:
    """Recursively drop null-valued fields so schema defaults can fill them."""
    if isinstance(value, Mapping):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value if v is not None]
    return value


def _default_for(field: Any) -> Any:
    if field in DATE_FIELDS:
        return EPOCH
    if field in REQUIRED_DEFAULTS:
        return copy.deepcopy(REQUIRED_DEFAULTS[field])
    return None


def _set_path(doc: Any, loc: Sequence[Any], value: Any) -> bool:
    target = doc
    for part in loc[:-1]:
        if isinstance(target, dict):
            nxt = target.get(part)
            if nxt is None:
                nxt = {}
                target[part] = nxt
            target = nxt
        elif isinstance(target, list) and isinstance(part, int) and 0 <= part < len(target):
            target = target[part]
        else:
            return False
    if not isinstance(target, dict):
        return False
    target[loc[-1]] = value
    return True


def apply_required_defaults(doc: Dict[str, Any], errors: Sequence[Mapping[str, Any]]) -> Tuple[Dict[str, Any], int]:
    """Fill fields reported missing by validation with placeholder defaults.

    Returns the repaired copy and the number of fields that were filled.
    """
    repaired = copy.deepcopy(doc)
    filled = 0
    for err in errors:
        loc = tuple(err.get("loc") or ())
        if err.get("type") != "missing" or not loc:
            continue
        default = _default_for(loc[-1])
        if default is None:
            continue
        if _set_path(repaired, loc, default):
            filled += 1
    return repaired, filled


def load_document(
    model: Type[M],
    raw: Mapping[str, Any],
    entity_type: Optional[EntityType] = None,
) -> M:
    """Validate a stored document, repairing it when the strict schema rejects it.

    Pass 1 validates the normalized document as-is, pass 2 strips null
    fields, pass 3 fills still-missing required fields with defaults.
    """
    kind = entity_type or getattr(model, "entity_type", None)
    doc = normalize(raw, kind)
    doc_id = doc.get("id")
    try:
        return model.model_validate(doc)
    except PydanticValidationError as exc:
        log_debug(doc_id, "normalize:pass1_failed", errors=exc.error_count())

    stripped = strip_nulls(doc)
    try:
        return model.model_validate(stripped)
    except PydanticValidationError as exc:
        last_errors = exc.errors()
        log_debug(doc_id, "normalize:pass2_failed", errors=exc.error_count())

    repaired = stripped
    # Nested required models (e.g. a missing stateMetadata) only report their
    # own missing fields after the parent has been filled in.
    for _ in range(3):
        repaired, filled = apply_required_defaults(repaired, last_errors)
        try:
            result = model.model_validate(repaired)
            log_warning(doc_id, "normalize:repaired_with_defaults", model=model.__name__)
            return result
        except PydanticValidationError as exc:
            last_errors = exc.errors()
        if not filled:
            break

    log_warning(doc_id, "normalize:corrupt", model=model.__name__, errors=len(last_errors))
    raise CorruptDocumentError(
        model.__name__,
        doc_id,
        details={
            "errors": [
                {"loc": list(e.get("loc") or ()), "type": e.get("type"), "msg": e.get("msg")}
                for e in last_errors
            ]
        },
    )
