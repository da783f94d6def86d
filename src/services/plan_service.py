from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from src.services.base import DEFAULT_ACTOR, EntityService, new_document, require_draft_for_edits
from src.shared.logging_utils import info as log_info
from src.specs.common.datetime_utils import ensure_utc, utc_now
from src.specs.common.enums import PlanState
from src.specs.common.errors import ReferentialIntegrityError, ResourceNotFoundError, ValidationError
from src.specs.documents.plan_document_spec import MasterPlanDocument, MicroPlanDocument, PlanDocument


class PlanService(EntityService):
    """Master and micro plans. Plans are edited in place; there is no version chain."""

    @property
    def repository(self):
        return self.repos.plans

    def _check_date_range(self, plan: PlanDocument) -> None:
        if ensure_utc(plan.dateRange.end) < ensure_utc(plan.dateRange.start):
            raise ValidationError("Plan dateRange.end must not be before dateRange.start")

    def create_master_plan(
        self,
        payload: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> MasterPlanDocument:
        payload = dict(payload or {})
        campaign_id = payload.pop("campaignId", None)
        if not campaign_id:
            raise ValidationError("Master plans must reference a campaign")
        try:
            campaign = self.repos.campaigns.get_active(campaign_id)
        except ResourceNotFoundError as exc:
            raise ReferentialIntegrityError(
                f"Campaign with ID {campaign_id} not found", details={"missingId": campaign_id}
            ) from exc
        brand_id = payload.pop("brandId", None) or campaign.brandId
        if brand_id != campaign.brandId:
            raise ReferentialIntegrityError("Master plan must belong to the campaign's brand")

        plan = new_document(MasterPlanDocument, payload, actor, comment, campaignId=campaign_id, brandId=brand_id)
        self._check_date_range(plan)
        self.repository.insert(plan)
        log_info(plan.id, "plan:created", type=plan.type, campaignId=campaign_id)
        return plan

    def create_micro_plan(
        self,
        payload: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> MicroPlanDocument:
        payload = dict(payload or {})
        if payload.get("campaignId"):
            raise ValidationError("Micro plans cannot be directly linked to a campaign")
        master_id = payload.pop("masterPlanId", None) or payload.pop("parentPlanId", None)
        if not master_id:
            raise ValidationError("Micro plans must have a parent master plan")
        parent = self.repository.find_by_id(master_id)
        if parent is None:
            raise ReferentialIntegrityError(
                f"Parent plan with ID {master_id} not found", details={"missingId": master_id}
            )
        if not isinstance(parent, MasterPlanDocument):
            raise ReferentialIntegrityError("Parent plan must be a master plan", details={"parentId": master_id})
        brand_id = payload.pop("brandId", None) or parent.brandId
        if brand_id != parent.brandId:
            raise ReferentialIntegrityError("Parent plan must belong to the same brand", details={"parentId": master_id})

        plan = new_document(MicroPlanDocument, payload, actor, comment, masterPlanId=master_id, brandId=brand_id)
        self._check_date_range(plan)
        self.repository.insert(plan)
        log_info(plan.id, "plan:created", type=plan.type, masterPlanId=master_id)
        return plan

    def get(self, plan_id: str) -> PlanDocument:
        return self.repository.get(plan_id)

    def list_by_brand(self, brand_id: str) -> List[PlanDocument]:
        return sorted(self.repository.find({"brandId": brand_id}), key=lambda p: p.createdAt)

    def list_by_campaign(self, campaign_id: str) -> List[MasterPlanDocument]:
        """Master plans of every version of the campaign."""
        return sorted(self.repos.hierarchy.master_plans_for_campaign(campaign_id), key=lambda p: p.createdAt)

    def list_micro_plans(self, master_plan_id: str) -> List[MicroPlanDocument]:
        return sorted(self.repos.hierarchy.micro_plans_for(master_plan_id), key=lambda p: p.createdAt)

    def update(
        self,
        plan_id: str,
        partial: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> PlanDocument:
        existing = self.get(plan_id)
        partial = dict(partial or {})
        # Re-parenting is not an edit
        for field in ("campaignId", "masterPlanId", "brandId"):
            partial.pop(field, None)
        require_draft_for_edits(existing, partial, "Plan")
        updated = self.repository.merge_update(existing, partial, actor, comment)
        self._check_date_range(updated)
        return self.repository.save(updated)

    def transition_state(
        self,
        plan_id: str,
        target: PlanState,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> PlanDocument:
        """Move a plan through its workflow. Entering ``active`` does not touch siblings."""
        return self.update(plan_id, {"state": target}, actor, comment)

    def siblings(self, plan: PlanDocument) -> List[PlanDocument]:
        if isinstance(plan, MicroPlanDocument):
            peers = self.repos.hierarchy.micro_plans_for(plan.masterPlanId)
        else:
            peers = self.repos.hierarchy.master_plans_for_campaign(plan.campaignId)
        return [p for p in peers if p.id != plan.id]

    def activate(self, plan_id: str, actor: str = DEFAULT_ACTOR, now: Optional[datetime] = None) -> PlanDocument:
        """Make ``plan_id`` the only active plan under its parent.

        Siblings are deactivated first, then the target is activated.
        """
        stamp = now or utc_now()
        plan = self.get(plan_id)
        for sibling in self.siblings(plan):
            if sibling.isActive:
                self.repository.patch(sibling.id, {"isActive": False})
                log_info(sibling.id, "plan:deactivated", activatedSibling=plan.id)

        meta = plan.stateMetadata.model_copy(update={"updatedBy": actor, "updatedAt": stamp})
        activated = plan.model_copy(update={"isActive": True, "updatedAt": stamp, "stateMetadata": meta})
        self.repository.save(activated)
        log_info(plan.id, "plan:activated", type=plan.type, parentId=plan.parent_id, actor=actor)
        return activated

    def delete(self, plan_id: str) -> bool:
        self.get(plan_id)
        return self.repository.delete(plan_id)
