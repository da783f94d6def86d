from __future__ import annotations

import logging
from typing import Optional

from src.services.gateway import EntityGateway, parse_entity_type
from src.specs.models.tools import EntityResponse, TransitionStateRequest
from src.specs.tools_registry import ToolDef
from src.tools.entity_support import entity_result, run_tool


def transition_state(
    req: TransitionStateRequest,
    *,
    logger: Optional[logging.Logger] = None,
) -> EntityResponse:
    def action(gateway: EntityGateway):
        kind = parse_entity_type(req.entityType)
        doc = gateway.transition_state(kind, req.entityId, req.targetState, req.actor, req.comment)
        return entity_result(kind.value, doc)

    return run_tool("transition_state", req, EntityResponse, action, logger)


__all__ = ["transition_state"]

# Tool registry integration

TOOL_DEF = ToolDef(
    name="transition_state",
    description="Move a campaign, plan or content item to another lifecycle state",
    input_model=TransitionStateRequest,
    output_model=EntityResponse,
)


def execute(args: dict, logger: Optional[logging.Logger] = None) -> EntityResponse:
    """Adapter for centralized tool registry: accepts dict args, returns typed response."""
    req = TransitionStateRequest(**args)
    return transition_state(req, logger=logger)
