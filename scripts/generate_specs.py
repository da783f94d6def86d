#!/usr/bin/env python3
"""
Write the engine's published contracts from its Pydantic models.

Everything lands under src/specs/:
 - schemas/<name>.schema.json plus a .yaml twin for every entry in SCHEMA_MODELS
 - openapi.json / openapi.yaml for the /entities HTTP routes
 - tools.yaml listing the agent tools with references into schemas/
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

try:
    import yaml  # type: ignore
except ImportError:  # pragma: no cover
    print("PyYAML is required: pip install pyyaml", file=sys.stderr)
    raise


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.specs.common.enums import EntityType  # noqa: E402
from src.specs.models import (  # noqa: E402
    SCHEMA_MODELS,
    EntityHttpResponse,
    EntityListHttpResponse,
    ErrorResponse,
    TransitionRequest,
)
from src.specs.tools_registry import TOOLS, ToolDef  # noqa: E402


def _dump(obj: dict, path: Path, as_json: bool = True) -> None:
    """Write ``obj`` as YAML next to ``path``, and as JSON at ``path`` when ``as_json``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if as_json:
        path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")
    path.with_suffix(".yaml").write_text(yaml.safe_dump(obj, sort_keys=False), encoding="utf-8")


def generate_model_schemas() -> int:
    for filename, model in SCHEMA_MODELS.items():
        _dump(model.model_json_schema(), SCHEMAS_DIR / filename)
    return len(SCHEMA_MODELS)


def _json_content(ref: str) -> dict:
    return {"application/json": {"schema": {"$ref": f"#/components/schemas/{ref}"}}}


def _error_responses(*codes: str) -> dict:
    descriptions = {
        "400": "Malformed JSON or request body",
        "404": "Entity not found",
        "409": "Name already taken",
        "422": "Invalid transition, guideline violation, validation or reference error",
    }
    return {code: {"description": descriptions[code], "content": _json_content("ErrorResponse")} for code in codes}


_ENTITY_TYPE_PARAM = {
    "in": "path",
    "name": "entityType",
    "required": True,
    "schema": {"type": "string", "enum": [e.value for e in EntityType]},
}
_ID_PARAM = {"in": "path", "name": "id", "required": True, "schema": {"type": "string"}}
_ACTOR_PARAM = {"in": "header", "name": "x-actor-id", "required": False, "schema": {"type": "string"}}


def build_openapi() -> dict:
    components = {
        "schemas": {
            "TransitionRequest": TransitionRequest.model_json_schema(),
            "EntityResponse": EntityHttpResponse.model_json_schema(),
            "EntityListResponse": EntityListHttpResponse.model_json_schema(),
            "ErrorResponse": ErrorResponse.model_json_schema(),
        }
    }
    item_params = [_ENTITY_TYPE_PARAM, _ID_PARAM, _ACTOR_PARAM]

    return {
        "openapi": "3.0.3",
        "info": {
            "title": "Campaign Lifecycle Engine API",
            "version": "0.1.0",
            "description": "HTTP endpoints for brands, campaigns, plans and content.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": {
            "/entities/{entityType}": {
                "post": {
                    "summary": "Create an entity",
                    "operationId": "createEntity",
                    "parameters": [_ENTITY_TYPE_PARAM, _ACTOR_PARAM],
                    "requestBody": {
                        "required": True,
                        "content": {"application/json": {"schema": {"type": "object"}}},
                    },
                    "responses": {
                        "201": {"description": "Entity created", "content": _json_content("EntityResponse")},
                        **_error_responses("400", "404", "409", "422"),
                    },
                }
            },
            "/entities/{entityType}/{id}": {
                "get": {
                    "summary": "Get an entity (active version unless ?version=N)",
                    "operationId": "getEntity",
                    "parameters": item_params
                    + [{"in": "query", "name": "version", "required": False, "schema": {"type": "integer"}}],
                    "responses": {
                        "200": {"description": "Entity", "content": _json_content("EntityResponse")},
                        **_error_responses("404"),
                    },
                },
                "patch": {
                    "summary": "Merge a partial update; ?mode=fork creates a new version",
                    "operationId": "updateEntity",
                    "parameters": item_params
                    + [{"in": "query", "name": "mode", "required": False, "schema": {"type": "string", "enum": ["mutate", "fork"]}}],
                    "requestBody": {
                        "required": True,
                        "content": {"application/json": {"schema": {"type": "object"}}},
                    },
                    "responses": {
                        "200": {"description": "Updated entity", "content": _json_content("EntityResponse")},
                        **_error_responses("400", "404", "409", "422"),
                    },
                },
                "delete": {
                    "summary": "Hard-delete an entity document",
                    "operationId": "deleteEntity",
                    "parameters": item_params,
                    "responses": {"204": {"description": "Deleted"}, **_error_responses("404")},
                },
            },
            "/entities/{entityType}/{id}/transition": {
                "post": {
                    "summary": "Move an entity to another lifecycle state",
                    "operationId": "transitionEntity",
                    "parameters": item_params,
                    "requestBody": {"required": True, "content": _json_content("TransitionRequest")},
                    "responses": {
                        "200": {"description": "Transitioned entity", "content": _json_content("EntityResponse")},
                        **_error_responses("400", "404", "422"),
                    },
                }
            },
            "/entities/{entityType}/{id}/activate": {
                "post": {
                    "summary": "Activate a version (campaign, content) or a plan among its siblings",
                    "operationId": "activateEntity",
                    "parameters": item_params,
                    "responses": {
                        "200": {"description": "Activated entity", "content": _json_content("EntityResponse")},
                        **_error_responses("404", "422"),
                    },
                }
            },
            "/entities/{entityType}/{id}/versions": {
                "get": {
                    "summary": "List the versions of a campaign or content chain",
                    "operationId": "listEntityVersions",
                    "parameters": item_params,
                    "responses": {
                        "200": {"description": "Chain members, oldest first", "content": _json_content("EntityListResponse")},
                        **_error_responses("404", "422"),
                    },
                }
            },
            "/entities/{entityType}/{id}/content": {
                "get": {
                    "summary": "List active content under an entity",
                    "operationId": "listEntityContent",
                    "parameters": item_params,
                    "responses": {
                        "200": {"description": "Active content", "content": _json_content("EntityListResponse")},
                        **_error_responses("404", "422"),
                    },
                }
            },
        },
        "components": components,
    }


def generate_openapi() -> None:
    _dump(build_openapi(), SPECS / "openapi.json")


def _schema_ref(model: type, filenames: dict, tool: ToolDef) -> dict:
    filename = filenames.get(model)
    if filename is None:
        raise KeyError(f"Tool {tool.name} uses {model.__name__}, which has no entry in SCHEMA_MODELS")
    return {"$ref": f"./schemas/{filename}"}


def generate_tools_yaml() -> int:
    filenames = {model: filename for filename, model in SCHEMA_MODELS.items()}
    entries = [
        {
            "name": tool.name,
            "description": tool.description,
            "input": _schema_ref(tool.input_model, filenames, tool),
            "output": _schema_ref(tool.output_model, filenames, tool),
        }
        for tool in TOOLS
    ]
    _dump({"kind": "function-tools", "version": "0.1.0", "tools": entries}, SPECS / "tools.json", as_json=False)
    return len(entries)


def main() -> None:
    schemas = generate_model_schemas()
    generate_openapi()
    tools = generate_tools_yaml()
    print(f"Wrote {schemas} schemas, openapi and {tools} tool entries under {SPECS}")


if __name__ == "__main__":
    main()
