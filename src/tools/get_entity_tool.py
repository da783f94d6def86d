from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import EntityResponse, GetEntityRequest
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_result, run_tool


def get_entity(
    req: GetEntityRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityResponse:
    """Fetch an entity by id.

    Any version id of a campaign or content chain resolves to the active
    version unless a specific ``version`` is requested.
    """

    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        return entity_result(kind.value, gateway.get(kind, req.entityId, req.version))

    return run_tool("get_entity", req, EntityResponse, action, logger)


__all__ = ["get_entity"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="get_entity",
    description="Retrieve an entity by id; versioned entities resolve to their active version",
    input_model=GetEntityRequest,
    output_model=EntityResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = GetEntityRequest(**args)
    return get_entity(req, logger=logger)
