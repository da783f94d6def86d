"""Brand guideline checks applied to content text."""
from typing import Iterable, List, Optional

from src.shared.logging_utils import info as log_info
from src.specs.common.errors import GuidelineViolationError
from src.specs.documents.brand_document_spec import BrandDocument
from src.specs.documents.content_document_spec import ContentDocument


def find_avoided_terms(text: Optional[str], avoided_terms: Iterable[str]) -> List[str]:
    """Avoided terms occurring anywhere in ``text``, compared case-insensitively."""
    haystack = (text or "").lower()
    return [term for term in avoided_terms if term and term.lower() in haystack]


def check_content_guidelines(content: ContentDocument, brand: BrandDocument) -> None:
    """Raise GuidelineViolationError when the content body uses an avoided term.

    Brands without guidelines accept any text.
    """
    if brand.guidelines is None:
        return
    found = find_avoided_terms(content.content, brand.guidelines.avoidedTerms)
    if found:
        log_info(content.id, "guidelines:violation", brandId=brand.id, terms=found)
        raise GuidelineViolationError(found, details={"brandId": brand.id, "contentId": content.id})
