"""Shared plumbing for the entity tools: gateway access and envelope building."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel

from src.services.gateway import EntityGateway
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.errors import CampaignEngineError
from src.specs.models.domain import to_json_document
from src.specs.models.tools import (
    EntityListResponse,
    EntityListResult,
    EntityResponse,
    EntityResult,
    ErrorInfo,
    ToolResultEnvelope,
)

R = TypeVar("R", bound=ToolResultEnvelope)

_gateway: Optional[EntityGateway] = None


def get_gateway() -> EntityGateway:
    global _gateway
    if _gateway is None:
        _gateway = EntityGateway()
    return _gateway


def use_gateway(gateway: Optional[EntityGateway]) -> None:
    """Route tool calls to ``gateway``; ``None`` restores the default store."""
    global _gateway
    _gateway = gateway


def entity_result(entity_type: str, doc: BaseDocument) -> EntityResult:
    return EntityResult(entityType=entity_type, entity=to_json_document(doc))


def entity_list_result(entity_type: str, docs: Iterable[BaseDocument]) -> EntityListResult:
    items = [to_json_document(d) for d in docs]
    return EntityListResult(entityType=entity_type, items=items, count=len(items))


def run_tool(
    name: str,
    req: BaseModel,
    response_model: Type[R],
    action: Callable[[EntityGateway], Any],
    logger: Optional[logging.Logger] = None,
) -> R:
    """Run ``action`` against the gateway and wrap the outcome in ``response_model``.

    Engine errors become failed envelopes carrying their code; anything else
    is logged with a traceback and reported as code ``Exception``.
    """
    log = logger or logging.getLogger("campaignengine")
    start = time.perf_counter()
    trace = getattr(req, "runTraceId", None)
    try:
        result = action(get_gateway())
        meta = {"durationMs": int((time.perf_counter() - start) * 1000)}
        log.info("%s: completed trace=%s", name, trace)
        return response_model(status="completed", result=result, error=None, meta=meta)
    except CampaignEngineError as exc:
        meta = {"durationMs": int((time.perf_counter() - start) * 1000)}
        log.warning("%s: failed code=%s trace=%s err=%s", name, exc.code, trace, exc)
        return response_model(
            status="failed",
            result=None,
            error=ErrorInfo(code=exc.code, message=str(exc), details=exc.details or None),
            meta=meta,
        )
    except Exception as exc:
        meta = {"durationMs": int((time.perf_counter() - start) * 1000)}
        log.exception("%s: error trace=%s err=%s", name, trace, exc)
        return response_model(
            status="failed",
            result=None,
            error=ErrorInfo(code="Exception", message=str(exc)),
            meta=meta,
        )


__all__ = [
    "EntityResponse",
    "EntityListResponse",
    "get_gateway",
    "use_gateway",
    "entity_result",
    "entity_list_result",
    "run_tool",
]
