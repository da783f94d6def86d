from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import CreateEntityRequest, EntityResponse
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_result, run_tool


def create_entity(
    req: CreateEntityRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityResponse:
    """Create a new entity; lifecycle entities start in their initial state."""

    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        doc = gateway.create(kind, req.payload, req.actor, req.comment)
        return entity_result(kind.value, doc)

    return run_tool("create_entity", req, EntityResponse, action, logger)


__all__ = ["create_entity"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="create_entity",
    description="Create a brand, campaign, master plan, micro plan or content item",
    input_model=CreateEntityRequest,
    output_model=EntityResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = CreateEntityRequest(**args)
    return create_entity(req, logger=logger)
