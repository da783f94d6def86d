from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import EntityResponse, UpdateEntityRequest
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_result, run_tool


def update_entity(
    req: UpdateEntityRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityResponse:
    """Merge ``req.partial`` into an entity.

    ``mode=fork`` creates a new version for campaigns and content; a
    ``state`` inside the partial goes through the lifecycle checks.
    """

    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        doc = gateway.update(kind, req.entityId, req.partial, req.mode, req.actor, req.comment)
        return entity_result(kind.value, doc)

    return run_tool("update_entity", req, EntityResponse, action, logger)


__all__ = ["update_entity"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="update_entity",
    description="Merge a partial update into an entity, in place or as a new version",
    input_model=UpdateEntityRequest,
    output_model=EntityResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = UpdateEntityRequest(**args)
    return update_entity(req, logger=logger)
