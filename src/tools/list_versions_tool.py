from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import EntityListResponse, ListVersionsRequest
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_list_result, run_tool


def list_versions(
    req: ListVersionsRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityListResponse:
    """All versions of a campaign or content chain, oldest first."""

    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        return entity_list_result(kind.value, gateway.list_versions(kind, req.entityId))

    return run_tool("list_versions", req, EntityListResponse, action, logger)


__all__ = ["list_versions"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="list_versions",
    description="List every version in a campaign or content version chain",
    input_model=ListVersionsRequest,
    output_model=EntityListResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityListResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = ListVersionsRequest(**args)
    return list_versions(req, logger=logger)
