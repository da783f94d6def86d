from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional

from src.lifecycle.merge import Replace
from src.services.base import DEFAULT_ACTOR, EntityService, new_document
from src.services.brand_service import BrandService
from src.shared.document_store import Range
from src.shared.logging_utils import info as log_info
from src.specs.common.datetime_utils import ensure_utc, utc_now
from src.specs.common.enums import CampaignState, MilestoneStatus, UpdateMode
from src.specs.common.errors import ConflictError, ResourceNotFoundError, ValidationError
from src.specs.documents.campaign_document_spec import CampaignDocument


class CampaignService(EntityService):
    """Campaigns are version-chained; reads by any chain id see the active version."""

    @property
    def versions(self):
        return self.repos.campaigns

    def _name_taken(self, name: str, exclude_root: Optional[str] = None) -> bool:
        for doc in self.versions.repository.find({"name": name, "isActive": True}):
            if doc.chain_root_id != exclude_root:
                return True
        return False

    def create(
        self,
        payload: Mapping[str, Any],
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> CampaignDocument:
        """Create version 1 of a campaign for a brand given by ``brandId`` or ``brandName``."""
        payload = dict(payload or {})
        brand = BrandService(self.repos).resolve(payload.pop("brandId", None), payload.pop("brandName", None))
        name = payload.get("name")
        if name and self._name_taken(name):
            raise ConflictError(f'Campaign with name "{name}" already exists', details={"name": name})

        campaign = new_document(CampaignDocument, payload, actor, comment, brandId=brand.id)
        if ensure_utc(campaign.endDate) < ensure_utc(campaign.startDate):
            raise ValidationError("Campaign endDate must not be before startDate")
        self.versions.repository.insert(campaign)
        log_info(campaign.id, "campaign:created", brandId=brand.id, name=campaign.name)
        return campaign

    def get(self, campaign_id: str) -> CampaignDocument:
        return self.versions.get_active(campaign_id)

    def get_by_name(self, name: str) -> Optional[CampaignDocument]:
        return self.versions.repository.find_one({"name": name, "isActive": True})

    def list(self, active_only: bool = True) -> List[CampaignDocument]:
        filters = {"isActive": True} if active_only else None
        return sorted(self.versions.repository.find(filters), key=lambda c: (c.createdAt, c.version))

    def list_by_brand(self, brand_id: str, state: Optional[CampaignState] = None) -> List[CampaignDocument]:
        filters = {"brandId": brand_id, "isActive": True}
        if state is not None:
            filters["state"] = state
        return sorted(self.versions.repository.find(filters), key=lambda c: c.createdAt)

    def list_in_date_range(self, start: datetime, end: datetime) -> List[CampaignDocument]:
        """Active campaigns running entirely inside [start, end]."""
        return self.versions.repository.find(
            {"isActive": True, "startDate": Range(gte=start), "endDate": Range(lte=end)}
        )

    def update(
        self,
        campaign_id: str,
        partial: Mapping[str, Any],
        mode: UpdateMode = UpdateMode.MUTATE,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> CampaignDocument:
        existing = self.get(campaign_id)
        new_name = (partial or {}).get("name")
        if isinstance(new_name, str) and new_name != existing.name and self._name_taken(new_name, existing.chain_root_id):
            raise ConflictError(f'Campaign with name "{new_name}" already exists', details={"name": new_name})
        return self.versions.apply_update(existing, partial, mode, actor, comment)

    def transition_state(
        self,
        campaign_id: str,
        target: CampaignState,
        actor: str = DEFAULT_ACTOR,
        comment: Optional[str] = None,
    ) -> CampaignDocument:
        existing = self.get(campaign_id)
        return self.versions.apply_update(existing, {"state": target}, UpdateMode.MUTATE, actor, comment)

    def list_versions(self, campaign_id: str) -> List[CampaignDocument]:
        return self.versions.list_versions(campaign_id)

    def get_version(self, campaign_id: str, version: int) -> CampaignDocument:
        return self.versions.get_version(campaign_id, version)

    def activate_version(self, campaign_id: str, actor: str = DEFAULT_ACTOR) -> CampaignDocument:
        return self.versions.activate_version(campaign_id, actor)

    def update_milestone_status(
        self,
        campaign_id: str,
        milestone_index: int,
        status: MilestoneStatus,
        actor: str = DEFAULT_ACTOR,
    ) -> CampaignDocument:
        """Set one milestone's status in place; never forks."""
        existing = self.get(campaign_id)
        milestones = [m.model_dump() for m in existing.majorMilestones]
        if not 0 <= milestone_index < len(milestones):
            raise ResourceNotFoundError("Milestone", f"{campaign_id}[{milestone_index}]")
        milestones[milestone_index]["status"] = MilestoneStatus(status).value
        return self.versions.apply_update(existing, {"majorMilestones": Replace(milestones)}, UpdateMode.MUTATE, actor)

    def upcoming_milestones(self, days_ahead: int = 7, now: Optional[datetime] = None) -> List[CampaignDocument]:
        """Active campaigns with a pending milestone due within ``days_ahead`` days."""
        start = now or utc_now()
        end = start + timedelta(days=days_ahead)
        result = []
        for campaign in self.list(active_only=True):
            for milestone in campaign.majorMilestones:
                due = ensure_utc(milestone.date)
                if milestone.status == MilestoneStatus.PENDING.value and start <= due <= end:
                    result.append(campaign)
                    break
        return result

    def delete(self, campaign_id: str) -> bool:
        """Hard-delete a single chain member; other versions are untouched."""
        self.versions.repository.get(campaign_id)
        return self.versions.repository.delete(campaign_id)
