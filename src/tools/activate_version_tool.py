from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import ActivateVersionRequest, EntityResponse
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_result, run_tool


def activate_version(
    req: ActivateVersionRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityResponse:
    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        return entity_result(kind.value, gateway.activate(kind, req.entityId, req.actor))

    return run_tool("activate_version", req, EntityResponse, action, logger)


__all__ = ["activate_version"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="activate_version",
    description="Activate a campaign/content version or a plan among its siblings",
    input_model=ActivateVersionRequest,
    output_model=EntityResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = ActivateVersionRequest(**args)
    return activate_version(req, logger=logger)
