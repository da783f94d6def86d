from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from .http import TransitionRequest, EntityHttpResponse, EntityListHttpResponse, ErrorResponse
from .tools import (
    ErrorInfo,
    ToolResultEnvelope,
    CreateEntityRequest,
    GetEntityRequest,
    UpdateEntityRequest,
    TransitionStateRequest,
    ActivateVersionRequest,
    ListVersionsRequest,
    ListContentRequest,
    EntityResponse,
    EntityListResponse,
)
from .domain import (
    BrandDocument,
    CampaignDocument,
    MasterPlanDocument,
    MicroPlanDocument,
    ContentDocument,
    DOCUMENT_MODELS,
)


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "brand.document.schema.json": BrandDocument,
    "campaign.document.schema.json": CampaignDocument,
    "masterplan.document.schema.json": MasterPlanDocument,
    "microplan.document.schema.json": MicroPlanDocument,
    "content.document.schema.json": ContentDocument,
    "tool.envelope.schema.json": ToolResultEnvelope,
    "error.info.schema.json": ErrorInfo,
    "create_entity.request.schema.json": CreateEntityRequest,
    "get_entity.request.schema.json": GetEntityRequest,
    "update_entity.request.schema.json": UpdateEntityRequest,
    "transition_state.request.schema.json": TransitionStateRequest,
    "activate_version.request.schema.json": ActivateVersionRequest,
    "list_versions.request.schema.json": ListVersionsRequest,
    "list_content.request.schema.json": ListContentRequest,
    "entity.response.schema.json": EntityResponse,
    "entity_list.response.schema.json": EntityListResponse,
    "http.transition.request.schema.json": TransitionRequest,
    "http.entity.response.schema.json": EntityHttpResponse,
    "http.entity_list.response.schema.json": EntityListHttpResponse,
    "http.error.response.schema.json": ErrorResponse,
}

__all__ = [
    "TransitionRequest",
    "EntityHttpResponse",
    "EntityListHttpResponse",
    "ErrorResponse",
    "ErrorInfo",
    "ToolResultEnvelope",
    "CreateEntityRequest",
    "GetEntityRequest",
    "UpdateEntityRequest",
    "TransitionStateRequest",
    "ActivateVersionRequest",
    "ListVersionsRequest",
    "ListContentRequest",
    "EntityResponse",
    "EntityListResponse",
    "BrandDocument",
    "CampaignDocument",
    "MasterPlanDocument",
    "MicroPlanDocument",
    "ContentDocument",
    "DOCUMENT_MODELS",
    "SCHEMA_MODELS",
]
