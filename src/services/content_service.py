from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from src.lifecycle.guidelines import check_content_guidelines
from src.services.base import DEFAULT_ACTOR, EntityService, new_document, require_draft_for_edits
from src.services.brand_service import BrandService
from src.shared.document_store import Range
from src.shared.logging_utils import info as log_info
from src.specs.common.base_document_spec import BaseDocument
from src.specs.common.datetime_utils import utc_now
from src.specs.common.enums import ContentState, UpdateMode
from src.specs.common.errors import ReferentialIntegrityError, ValidationError
from src.specs.documents.content_document_spec import ContentDocument
from src.specs.documents.plan_document_spec import MicroPlanDocument


class ContentService(EntityService):
    """Content pieces: version-chained, checked against brand guidelines before ``ready``."""

    @property
    def versions(self):
        return self.repos.contents

    def _guideline_guard(self, candidate: BaseDocument, target: str) -> None:
        if target != ContentState.READY.value:
            return
        brand = self.repos.hierarchy.brand_for_content(candidate)
        check_content_guidelines(candidate, brand)

    def create(
        self,
        payload: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> ContentDocument:
        """Create content under a micro plan, or standalone under a brand.

        Content under a micro plan takes its brand from the plan hierarchy.
        """
        payload = dict(payload or {})
        micro_plan_id = payload.pop("microPlanId", None)
        requested_brand = payload.pop("brandId", None)
        brand_name = payload.pop("brandName", None)

        if micro_plan_id:
            micro = self.repos.plans.find_by_id(micro_plan_id)
            if micro is None:
                raise ReferentialIntegrityError(
                    f"Micro plan with ID {micro_plan_id} not found", details={"missingId": micro_plan_id}
                )
            if not isinstance(micro, MicroPlanDocument):
                raise ReferentialIntegrityError(
                    "Content can only be attached to a micro plan", details={"planId": micro_plan_id}
                )
            brand = self.repos.hierarchy.brand_for_plan(micro)
            if requested_brand and requested_brand != brand.id:
                raise ReferentialIntegrityError(
                    "Content brand does not match its micro plan's brand",
                    details={"brandId": requested_brand, "planBrandId": brand.id},
                )
        else:
            brand = BrandService(self.repos).resolve(requested_brand, brand_name)

        content = new_document(
            ContentDocument, payload, actor, comment, brandId=brand.id, microPlanId=micro_plan_id
        )
        self.versions.repository.insert(content)
        log_info(content.id, "content:created", brandId=brand.id, microPlanId=micro_plan_id)
        return content

    def get(self, content_id: str) -> ContentDocument:
        return self.versions.get_active(content_id)

    def list_by_micro_plan(self, micro_plan_id: str) -> List[ContentDocument]:
        return sorted(
            self.versions.repository.find({"microPlanId": micro_plan_id, "isActive": True}),
            key=lambda c: c.createdAt,
        )

    def list_by_brand(self, brand_id: str, state: Optional[ContentState] = None) -> List[ContentDocument]:
        filters: Dict[str, Any] = {"brandId": brand_id, "isActive": True}
        if state is not None:
            filters["state"] = state
        return sorted(self.versions.repository.find(filters), key=lambda c: c.createdAt)

    def update(
        self,
        content_id: str,
        partial: Mapping[str, Any],
        mode: UpdateMode = UpdateMode.MUTATE,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> ContentDocument:
        partial = dict(partial or {})
        partial.pop("brandId", None)
        partial.pop("microPlanId", None)
        existing = self.get(content_id)
        require_draft_for_edits(existing, partial, "Content")
        return self.versions.apply_update(existing, partial, mode, actor, comment, guard=self._guideline_guard)

    def transition_state(
        self,
        content_id: str,
        target: ContentState,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> ContentDocument:
        return self.update(content_id, {"state": target}, UpdateMode.MUTATE, actor, comment)

    def schedule(self, content_id: str, publish_at: datetime, actor: str = DEFAULT_ACTOR) -> ContentDocument:
        """Record when ready content should be published."""
        existing = self.get(content_id)
        if existing.state != ContentState.READY.value:
            raise ValidationError(
                "Can only schedule content in ready state",
                details={"contentId": existing.id, "state": existing.state},
            )
        return self.versions.apply_update(
            existing, {"stateMetadata": {"scheduledFor": publish_at}}, UpdateMode.MUTATE, actor
        )

    def due_for_publishing(self, now: Optional[datetime] = None) -> List[ContentDocument]:
        """Active ready content whose scheduled time has passed."""
        cutoff = now or utc_now()
        due = self.versions.repository.find(
            {
                "state": ContentState.READY.value,
                "isActive": True,
                "stateMetadata.scheduledFor": Range(lte=cutoff),
            }
        )
        return sorted(due, key=lambda c: c.stateMetadata.scheduledFor)

    def mark_published(
        self,
        content_id: str,
        url: Optional[str] = None,
        actor: str = DEFAULT_ACTOR,
        platform_post_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ContentDocument:
        stamp = now or utc_now()
        existing = self.get(content_id)
        partial: Dict[str, Any] = {
            "state": ContentState.PUBLISHED,
            "stateMetadata": {"publishedAt": stamp, "publishedUrl": url},
            "publishedMetadata": {"url": url, "platformPostId": platform_post_id},
        }
        published = self.versions.apply_update(existing, partial, UpdateMode.MUTATE, actor, now=stamp)
        log_info(published.id, "content:published", url=url)
        return published

    def list_versions(self, content_id: str) -> List[ContentDocument]:
        return self.versions.list_versions(content_id)

    def get_version(self, content_id: str, version: int) -> ContentDocument:
        return self.versions.get_version(content_id, version)

    def activate_version(self, content_id: str, actor: str = DEFAULT_ACTOR) -> ContentDocument:
        return self.versions.activate_version(content_id, actor)

    def delete(self, content_id: str) -> bool:
        """Hard-delete a single chain member; other versions are untouched."""
        self.versions.repository.get(content_id)
        return self.versions.repository.delete(content_id)
