from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from src.services.base import DEFAULT_ACTOR, EntityService, new_document
from src.shared.logging_utils import info as log_info
from src.specs.common.errors import ConflictError, ResourceNotFoundError, ValidationError
from src.specs.documents.brand_document_spec import BrandDocument


class BrandService(EntityService):
    """Brands are plain documents: no lifecycle, no version chain."""

    @property
    def repository(self):
        return self.repos.brands

    def create(self, payload: Mapping[str, Any], actor: str = DEFAULT_ACTOR) -> BrandDocument:
        name = (payload or {}).get("name")
        if name and self.get_by_name(name) is not None:
            raise ConflictError(f'Brand with name "{name}" already exists', details={"name": name})
        brand = new_document(BrandDocument, payload, actor)
        self.repository.insert(brand)
        log_info(brand.id, "brand:created", name=brand.name)
        return brand

    def get(self, brand_id: str) -> BrandDocument:
        return self.repository.get(brand_id)

    def get_by_name(self, name: str) -> Optional[BrandDocument]:
        return self.repository.find_one({"name": name})

    def resolve(self, brand_id: Optional[str] = None, brand_name: Optional[str] = None) -> BrandDocument:
        """Look a brand up by id, falling back to its unique name."""
        if brand_id:
            return self.get(brand_id)
        if brand_name:
            brand = self.get_by_name(brand_name)
            if brand is None:
                raise ResourceNotFoundError("Brand", brand_name)
            return brand
        raise ValidationError("Either brandId or brandName must be provided")

    def list(self) -> List[BrandDocument]:
        return sorted(self.repository.find(), key=lambda b: b.name.lower())

    def update(
        self,
        brand_id: str,
        partial: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> BrandDocument:
        existing = self.get(brand_id)
        new_name = (partial or {}).get("name")
        if isinstance(new_name, str) and new_name != existing.name:
            clash = self.get_by_name(new_name)
            if clash is not None and clash.id != brand_id:
                raise ConflictError(f'Brand with name "{new_name}" already exists', details={"name": new_name})
        updated = self.repository.merge_update(existing, partial, actor, comment)
        return self.repository.save(updated)

    def add_key_message(
        self,
        brand_id: str,
        audience_segment: str,
        message: str,
        actor: str = DEFAULT_ACTOR,
    ) -> BrandDocument:
        """Add a key message, or replace the message for an existing audience segment."""
        partial: Dict[str, Any] = {
            "guidelines": {"keyMessages": [{"audienceSegment": audience_segment, "message": message}]}
        }
        return self.update(brand_id, partial, actor)

    def delete(self, brand_id: str) -> bool:
        self.get(brand_id)
        return self.repository.delete(brand_id)
