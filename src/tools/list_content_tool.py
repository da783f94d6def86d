from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.common.enums import EntityType
from src.specs.models.tools import EntityListResponse, ListContentRequest
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_list_result, run_tool


def list_content(
    req: ListContentRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityListResponse:
    """Active content anywhere below the given entity in the hierarchy."""

    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        return entity_list_result(EntityType.CONTENT.value, gateway.content_under(kind, req.entityId))

    return run_tool("list_content", req, EntityListResponse, action, logger)


__all__ = ["list_content"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="list_content",
    description="List active content under a brand, campaign, plan or content item",
    input_model=ListContentRequest,
    output_model=EntityListResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityListResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = ListContentRequest(**args)
    return list_content(req, logger=logger)
