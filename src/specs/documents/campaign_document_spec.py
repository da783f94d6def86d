from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar, List, Optional
from datetime import datetime
from ..common.base_document_spec import VersionedDocument
from ..common.enums import CampaignState, EntityType, MilestoneStatus


class CampaignGoal(BaseModel):
	model_config = ConfigDict(extra="allow")

	type: str = Field(..., description="Goal category, unique within a campaign (e.g. awareness)")
	description: Optional[str] = Field(None, description="What success looks like for this goal")
	priority: Optional[int] = Field(None, description="Relative priority, lower is more important")
	metrics: List[str] = Field(default_factory=list, description="Metric names used to track the goal")


class AudienceSegment(BaseModel):
	model_config = ConfigDict(extra="allow")

	segment: str = Field(..., description="Segment name, unique within a campaign")
	characteristics: List[str] = Field(default_factory=list)
	messagingAngle: Optional[str] = None


class ContentMixEntry(BaseModel):
	model_config = ConfigDict(extra="allow")

	category: str = Field(..., description="Content category, unique within a campaign")
	ratio: Optional[float] = Field(None, ge=0, description="Share of total output for this category")
	platforms: List[str] = Field(default_factory=list)


class Milestone(BaseModel):
	model_config = ConfigDict(extra="allow", use_enum_values=True)

	date: datetime = Field(..., description="Target date for the milestone")
	description: str = Field(..., description="What the milestone represents")
	status: MilestoneStatus = Field(MilestoneStatus.PENDING, description="Completion status")


class PerformanceMetric(BaseModel):
	model_config = ConfigDict(extra="allow")

	metricName: str
	target: Optional[float] = None
	current: Optional[float] = None
	unit: Optional[str] = None


class CampaignDocument(VersionedDocument):
	entity_type: ClassVar[EntityType] = EntityType.CAMPAIGN
	container: ClassVar[str] = "campaigns"

	brandId: str = Field(..., description="ID of the brand running the campaign")
	name: str
	description: Optional[str] = None
	objectives: List[str] = Field(default_factory=list)
	startDate: datetime
	endDate: datetime
	state: CampaignState = Field(CampaignState.DRAFT, description="Lifecycle state of the campaign")
	goals: List[CampaignGoal] = Field(default_factory=list)
	audience: List[AudienceSegment] = Field(default_factory=list)
	contentMix: List[ContentMixEntry] = Field(default_factory=list)
	majorMilestones: List[Milestone] = Field(default_factory=list)
	performanceMetrics: List[PerformanceMetric] = Field(default_factory=list)
