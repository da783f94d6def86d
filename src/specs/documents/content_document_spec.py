from pydantic import BaseModel, ConfigDict, Field
from typing import Any, ClassVar, Dict, List, Optional
from datetime import datetime
from ..common.base_document_spec import StateMetadata, VersionedDocument
from ..common.enums import ContentState, EntityType


class ContentStateMetadata(StateMetadata):
	scheduledFor: Optional[datetime] = Field(None, description="When the content should be published")
	publishedAt: Optional[datetime] = Field(None, description="When the content was actually published")
	publishedUrl: Optional[str] = Field(None, description="Public URL of the published post")


class MediaRequirements(BaseModel):
	model_config = ConfigDict(extra="allow")

	type: Optional[str] = Field(None, description="Kind of media, e.g. image, video, carousel")
	description: Optional[str] = None
	dimensions: Optional[str] = None
	count: Optional[int] = Field(None, ge=0)


class PublishedMetadata(BaseModel):
	model_config = ConfigDict(extra="allow")

	url: Optional[str] = None
	platformPostId: Optional[str] = None
	metrics: Dict[str, Any] = Field(default_factory=dict)


class ContentDocument(VersionedDocument):
	entity_type: ClassVar[EntityType] = EntityType.CONTENT
	container: ClassVar[str] = "content"

	brandId: str = Field(..., description="ID of the brand the content speaks for")
	microPlanId: Optional[str] = Field(None, description="Owning micro plan; None for standalone content")
	title: str
	content: str = Field(..., description="Body text checked against the brand's avoided terms")
	format: Optional[str] = None
	platform: Optional[str] = None
	keywords: List[str] = Field(default_factory=list)
	mediaRequirements: Optional[MediaRequirements] = None
	publishedMetadata: Optional[PublishedMetadata] = None
	state: ContentState = Field(ContentState.DRAFT, description="Lifecycle state of the content")
	stateMetadata: ContentStateMetadata
