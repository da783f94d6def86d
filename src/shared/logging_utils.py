import logging
from typing import Any, Dict, Optional


_LOGGER = logging.getLogger("campaignengine")


def log(level: int, entity_id: Optional[str], message: str, **dimensions: Any) -> None:
    dims: Dict[str, Any] = {"entityId": entity_id} if entity_id else {}
    dims.update(dimensions)
    try:
        _LOGGER.log(level, message, extra={"custom_dimensions": dims})
    except Exception:
        # Fallback if extra/custom_dimensions not supported in the environment
        _LOGGER.log(level, f"{message} | {dims}")


def debug(entity_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.DEBUG, entity_id, message, **dimensions)


def info(entity_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, entity_id, message, **dimensions)


def warning(entity_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, entity_id, message, **dimensions)


def error(entity_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, entity_id, message, **dimensions)
