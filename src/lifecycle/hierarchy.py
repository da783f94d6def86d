"""
Read-only walks over Brand -> Campaign -> MasterPlan -> MicroPlan -> Content.

Plans reference their campaign by the id of any member of the campaign's
version chain, so campaign lookups always go through the whole chain.
"""
from __future__ import annotations

from typing import List, Optional, Set

from src.lifecycle.repository import DocumentRepository
from src.lifecycle.versioning import VersionChainManager
from src.shared.logging_utils import debug as log_debug
from src.specs.common.enums import EntityType
from src.specs.common.errors import ReferentialIntegrityError, ResourceNotFoundError, ValidationError
from src.specs.documents.brand_document_spec import BrandDocument
from src.specs.documents.campaign_document_spec import CampaignDocument
from src.specs.documents.content_document_spec import ContentDocument
from src.specs.documents.plan_document_spec import MasterPlanDocument, MicroPlanDocument, PlanDocument


class HierarchyResolver:
    def __init__(
        self,
        brands: DocumentRepository[BrandDocument],
        campaigns: VersionChainManager[CampaignDocument],
        plans: DocumentRepository[PlanDocument],
        contents: VersionChainManager[ContentDocument],
    ):
        self.brands = brands
        self.campaigns = campaigns
        self.plans = plans
        self.contents = contents

    # -- upward ---------------------------------------------------------

    def _require(self, repo: DocumentRepository, doc_id: Optional[str], context: str):
        doc = repo.find_by_id(doc_id) if doc_id else None
        if doc is None:
            raise ReferentialIntegrityError(
                f"{context} references missing {repo.resource_name} '{doc_id}'",
                details={"missingId": doc_id},
            )
        return doc

    def master_plan_for(self, micro: MicroPlanDocument) -> MasterPlanDocument:
        master = self._require(self.plans, micro.masterPlanId, f"Micro plan '{micro.id}'")
        if not isinstance(master, MasterPlanDocument):
            raise ReferentialIntegrityError(
                f"Plan '{master.id}' referenced by micro plan '{micro.id}' is not a master plan"
            )
        return master

    def campaign_for(self, master: MasterPlanDocument) -> CampaignDocument:
        try:
            return self.campaigns.get_active(master.campaignId)
        except ResourceNotFoundError as exc:
            raise ReferentialIntegrityError(
                f"Master plan '{master.id}' references missing Campaign '{master.campaignId}'",
                details={"missingId": master.campaignId},
            ) from exc

    def brand_for_plan(self, plan: PlanDocument) -> BrandDocument:
        if isinstance(plan, MicroPlanDocument):
            plan = self.master_plan_for(plan)
        campaign = self.campaign_for(plan)
        return self._require(self.brands, campaign.brandId, f"Campaign '{campaign.id}'")

    def brand_for_content(self, content: ContentDocument) -> BrandDocument:
        """Owning brand: through the micro plan chain, or brandId for standalone content."""
        if not content.microPlanId:
            return self._require(self.brands, content.brandId, f"Content '{content.id}'")
        micro = self._require(self.plans, content.microPlanId, f"Content '{content.id}'")
        if not isinstance(micro, MicroPlanDocument):
            raise ReferentialIntegrityError(
                f"Plan '{micro.id}' referenced by content '{content.id}' is not a micro plan"
            )
        return self.brand_for_plan(micro)

    # -- downward -------------------------------------------------------

    def campaign_chain_ids(self, campaign_id: str) -> Set[str]:
        return {member.id for member in self.campaigns.list_versions(campaign_id)}

    def master_plans_for_campaign(self, campaign_id: str) -> List[MasterPlanDocument]:
        plans: List[MasterPlanDocument] = []
        for chain_id in sorted(self.campaign_chain_ids(campaign_id)):
            plans.extend(p for p in self.plans.find({"campaignId": chain_id}) if isinstance(p, MasterPlanDocument))
        return plans

    def micro_plans_for(self, master_plan_id: str) -> List[MicroPlanDocument]:
        return [p for p in self.plans.find({"masterPlanId": master_plan_id}) if isinstance(p, MicroPlanDocument)]

    def _active_content(self, micro_plan_ids: List[str]) -> List[ContentDocument]:
        found: List[ContentDocument] = []
        for micro_id in micro_plan_ids:
            found.extend(self.contents.repository.find({"microPlanId": micro_id, "isActive": True}))
        return found

    def content_under(self, entity_type: EntityType, entity_id: str) -> List[ContentDocument]:
        """Active content anywhere below the given entity."""
        try:
            kind = EntityType(entity_type)
        except ValueError as exc:
            raise ValidationError(f"Unsupported entity type '{entity_type}'") from exc
        if kind == EntityType.CONTENT:
            return [self.contents.get_active(entity_id)]
        if kind == EntityType.BRAND:
            self.brands.get(entity_id)
            result = self.contents.repository.find({"brandId": entity_id, "isActive": True})
        elif kind == EntityType.MICRO_PLAN:
            self.plans.get(entity_id)
            result = self._active_content([entity_id])
        elif kind == EntityType.MASTER_PLAN:
            self.plans.get(entity_id)
            result = self._active_content([p.id for p in self.micro_plans_for(entity_id)])
        elif kind == EntityType.CAMPAIGN:
            micro_ids = [
                micro.id
                for master in self.master_plans_for_campaign(entity_id)
                for micro in self.micro_plans_for(master.id)
            ]
            result = self._active_content(micro_ids)
        log_debug(entity_id, "hierarchy:content_under", entityType=kind.value, count=len(result))
        return sorted(result, key=lambda c: c.createdAt)
