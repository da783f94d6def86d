"""
Common exception classes for the campaign engine
"""
from typing import Optional, Dict, Any, Iterable, List


class CampaignEngineError(Exception):
    """Base exception class for campaign engine errors"""
    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to standard error format"""
        return {
            "code": self.code,
            "message": str(self),
            "details": self.details
        }


class ConfigurationError(CampaignEngineError):
    """Raised when there's an error in configuration or environment variables"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class ResourceNotFoundError(CampaignEngineError):
    """Raised when a requested resource is not found"""
    def __init__(self, resource_type: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(message, code="RESOURCE_NOT_FOUND", details=details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class CorruptDocumentError(CampaignEngineError):
    """Raised when a stored document cannot be repaired into a valid shape"""
    def __init__(self, resource_type: str, resource_id: Optional[str], details: Optional[Dict[str, Any]] = None):
        message = f"{resource_type} document '{resource_id}' is corrupt and could not be repaired"
        super().__init__(message, code="CORRUPT_DOCUMENT", details=details)


class InvalidTransitionError(CampaignEngineError):
    """Raised when a lifecycle state is not reachable from the current state"""
    def __init__(
        self,
        entity_type: str,
        current: str,
        target: str,
        allowed: Iterable[str],
        include_allowed: bool = False,
    ):
        self.current = current
        self.target = target
        self.allowed: List[str] = list(allowed)
        message = f"Invalid {entity_type} state transition from {current} to {target}"
        if include_allowed:
            choices = ", ".join(self.allowed) if self.allowed else "none"
            message = f"{message}. Allowed transitions from {current}: {choices}"
        super().__init__(
            message,
            code="INVALID_TRANSITION",
            details={"current": current, "target": target, "allowed": self.allowed},
        )


class GuidelineViolationError(CampaignEngineError):
    """Raised when content text contains terms the brand avoids"""
    def __init__(self, terms: Iterable[str], details: Optional[Dict[str, Any]] = None):
        self.terms = list(terms)
        message = f"Content contains avoided terms: {', '.join(self.terms)}"
        super().__init__(message, code="GUIDELINE_VIOLATION", details={"terms": self.terms, **(details or {})})


class ReferentialIntegrityError(CampaignEngineError):
    """Raised when a referenced parent entity is missing or of the wrong type"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="REFERENTIAL_INTEGRITY_ERROR", details=details)


class ValidationError(CampaignEngineError):
    """Raised when a payload or a merged document fails schema validation"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class ConflictError(CampaignEngineError):
    """Raised when an entity with the same unique name already exists"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)
