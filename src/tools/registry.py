from __future__ import annotations

import importlib
import json
import logging
import pkgutil
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from src.specs.models.tools import ErrorInfo
from src.specs.tools_registry import ToolDef

Executor = Callable[[dict, Optional[logging.Logger]], object]

_LOGGER = logging.getLogger("campaignengine")


@dataclass
class ToolCatalog:
    defs: List[ToolDef] = field(default_factory=list)
    executors: Dict[str, Executor] = field(default_factory=dict)

    def add(self, tool_def: ToolDef, execute: Executor) -> None:
        if tool_def.name in self.executors:
            raise ValueError(f"Duplicate tool name '{tool_def.name}'")
        self.defs.append(tool_def)
        self.executors[tool_def.name] = execute


@lru_cache(maxsize=1)
def _catalog() -> ToolCatalog:
    """Collect every ``src.tools.*_tool`` module exporting TOOL_DEF and execute(args, logger)."""
    import src.tools as tools_pkg  # type: ignore

    catalog = ToolCatalog()
    names = sorted(m.name for m in pkgutil.iter_modules(tools_pkg.__path__))  # type: ignore[arg-type]
    for name in names:
        if not name.endswith("_tool"):
            continue
        try:
            module = importlib.import_module(f"src.tools.{name}")
        except ImportError as exc:
            _LOGGER.warning("tools: skipping %s: %s", name, exc)
            continue
        tool_def = getattr(module, "TOOL_DEF", None)
        execute = getattr(module, "execute", None)
        if tool_def is not None and execute is not None:
            catalog.add(tool_def, execute)
    return catalog


def list_tool_defs() -> List[ToolDef]:
    return list(_catalog().defs)


def build_function_tools() -> List[dict]:
    """Agent function-tool specs; parameters are the input models' JSON schemas."""
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.input_model.model_json_schema(),
            },
        }
        for t in _catalog().defs
    ]


def _failed(code: str, message: str) -> str:
    err = ErrorInfo(code=code, message=message)
    return json.dumps({"status": "failed", "result": None, "error": err.model_dump()})


def execute_tool(name: str, args: dict, logger: Optional[logging.Logger] = None) -> str:
    """Run a tool by name and return its envelope as JSON.

    Unknown names and arguments that do not fit the tool's input model
    produce failed envelopes instead of raising.
    """
    handler = _catalog().executors.get(name)
    if handler is None:
        return _failed("UnknownTool", f"Tool '{name}' not implemented")
    try:
        resp = handler(args or {}, logger)
    except PydanticValidationError as exc:
        (logger or _LOGGER).warning("tools: invalid arguments for %s: %s", name, exc)
        return _failed("InvalidArguments", str(exc))
    return resp.model_dump_json()  # type: ignore[attr-defined]


__all__ = [
    "ToolCatalog",
    "list_tool_defs",
    "build_function_tools",
    "execute_tool",
]
