import json
from typing import Any, Dict, List, Optional

import azure.functions as func
from pydantic import ValidationError as PydanticValidationError

from src.services.gateway import EntityGateway, parse_entity_type
from src.shared.logging_utils import error as log_error, info as log_info, warning as log_warning
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.errors import CampaignEngineError
from src.specs.models.domain import to_json_document
from src.specs.models.http import EntityHttpResponse, EntityListHttpResponse, ErrorResponse, TransitionRequest


bp = func.Blueprint()

ACTOR_HEADER = "x-actor-id"

STATUS_BY_CODE: Dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "CONFLICT": 409,
    "INVALID_TRANSITION": 422,
    "GUIDELINE_VIOLATION": 422,
    "VALIDATION_ERROR": 422,
    "REFERENTIAL_INTEGRITY_ERROR": 422,
}

_gateway: Optional[EntityGateway] = None


def get_gateway() -> EntityGateway:
    global _gateway
    if _gateway is None:
        _gateway = EntityGateway()
    return _gateway


def _json_response(model, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(body=model.model_dump_json(), mimetype="application/json", status_code=status_code)


def _error_response(code: str, message: str, status_code: int, details: Optional[Dict[str, Any]] = None) -> func.HttpResponse:
    return _json_response(ErrorResponse(code=code, message=message, details=details or {}), status_code)


def _engine_error(exc: CampaignEngineError) -> func.HttpResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status >= 500:
        log_error(None, "http:engine_error", code=exc.code, error=str(exc))
    else:
        log_warning(None, "http:rejected", code=exc.code, error=str(exc))
    return _json_response(ErrorResponse(**exc.to_dict()), status)


def _body(req: func.HttpRequest) -> Dict[str, Any]:
    raw = req.get_body()
    if not raw:
        return {}
    body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _actor(req: func.HttpRequest) -> str:
    return req.headers.get(ACTOR_HEADER) or req.params.get("actor") or "system"


def _entity(entity_type: str, doc: BaseDocument, status_code: int = 200) -> func.HttpResponse:
    return _json_response(EntityHttpResponse(entityType=entity_type, entity=to_json_document(doc)), status_code)


def _entity_list(entity_type: str, docs: List[BaseDocument]) -> func.HttpResponse:
    items = [to_json_document(d) for d in docs]
    return _json_response(EntityListHttpResponse(entityType=entity_type, items=items, count=len(items)))


def _handle(action) -> func.HttpResponse:
    try:
        return action()
    except CampaignEngineError as exc:
        return _engine_error(exc)
    except PydanticValidationError as exc:
        log_warning(None, "http:bad_request", error=str(exc))
        return _error_response("BAD_REQUEST", "Request body failed validation", 400, {"errors": json.loads(exc.json())})
    except ValueError as exc:
        log_warning(None, "http:bad_json", error=str(exc))
        return _error_response("BAD_REQUEST", str(exc), 400)


def create_entity(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        body = _body(req)
        comment = body.pop("comment", None)
        doc = gateway.create(kind, body, _actor(req), comment)
        log_info(doc.id, "http:created", entityType=kind.value)
        return _entity(kind.value, doc, 201)

    return _handle(action)


def entity_item(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    """GET returns the entity (active version unless ?version=N), PATCH merges, DELETE removes."""

    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        entity_id = req.route_params.get("id")
        method = (req.method or "GET").upper()
        if method == "GET":
            version = req.params.get("version")
            return _entity(kind.value, gateway.get(kind, entity_id, int(version) if version else None))
        if method == "PATCH":
            body = _body(req)
            comment = body.pop("comment", None)
            mode = req.params.get("mode")
            doc = gateway.update(kind, entity_id, body, mode, _actor(req), comment)
            return _entity(kind.value, doc)
        if method == "DELETE":
            gateway.delete(kind, entity_id)
            log_info(entity_id, "http:deleted", entityType=kind.value)
            return func.HttpResponse(status_code=204)
        return _error_response("METHOD_NOT_ALLOWED", f"Method {method} not allowed", 405)

    return _handle(action)


def transition_entity(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        body = TransitionRequest.model_validate(_body(req))
        doc = gateway.transition_state(kind, req.route_params.get("id"), body.targetState, _actor(req), body.comment)
        return _entity(kind.value, doc)

    return _handle(action)


def activate_entity(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        return _entity(kind.value, gateway.activate(kind, req.route_params.get("id"), _actor(req)))

    return _handle(action)


def list_entity_versions(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        return _entity_list(kind.value, gateway.list_versions(kind, req.route_params.get("id")))

    return _handle(action)


def list_entity_content(req: func.HttpRequest, gateway: EntityGateway) -> func.HttpResponse:
    def action():
        kind = parse_entity_type(req.route_params.get("entityType"))
        return _entity_list("content", gateway.content_under(kind, req.route_params.get("id")))

    return _handle(action)


@bp.function_name(name="entities_create")
@bp.route(route="entities/{entityType}", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def entities_create(req: func.HttpRequest) -> func.HttpResponse:
    return create_entity(req, get_gateway())


@bp.function_name(name="entities_item")
@bp.route(route="entities/{entityType}/{id}", methods=["GET", "PATCH", "DELETE"], auth_level=func.AuthLevel.FUNCTION)
def entities_item(req: func.HttpRequest) -> func.HttpResponse:
    return entity_item(req, get_gateway())


@bp.function_name(name="entities_transition")
@bp.route(route="entities/{entityType}/{id}/transition", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def entities_transition(req: func.HttpRequest) -> func.HttpResponse:
    return transition_entity(req, get_gateway())


@bp.function_name(name="entities_activate")
@bp.route(route="entities/{entityType}/{id}/activate", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def entities_activate(req: func.HttpRequest) -> func.HttpResponse:
    return activate_entity(req, get_gateway())


@bp.function_name(name="entities_versions")
@bp.route(route="entities/{entityType}/{id}/versions", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def entities_versions(req: func.HttpRequest) -> func.HttpResponse:
    return list_entity_versions(req, get_gateway())


@bp.function_name(name="entities_content")
@bp.route(route="entities/{entityType}/{id}/content", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def entities_content(req: func.HttpRequest) -> func.HttpResponse:
    return list_entity_content(req, get_gateway())
