from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar, Optional, List
from ..common.base_document_spec import BaseDocument
from ..common.enums import EntityType


class VisualIdentity(BaseModel):
    model_config = ConfigDict(extra="allow")

    primaryColor: Optional[str] = None
    secondaryColor: Optional[str] = None


class Narratives(BaseModel):
    model_config = ConfigDict(extra="allow")

    elevatorPitch: Optional[str] = None
    shortNarrative: Optional[str] = None
    fullNarrative: Optional[str] = None


class KeyMessage(BaseModel):
    audienceSegment: str # Audience the message is written for
    message: str


class BrandGuidelines(BaseModel):
    model_config = ConfigDict(extra="allow")

    tone: List[str] = Field(default_factory=list)
    vocabulary: List[str] = Field(default_factory=list)
    avoidedTerms: List[str] = Field(default_factory=list) # Matched case-insensitively against content text
    visualIdentity: Optional[VisualIdentity] = None
    narratives: Optional[Narratives] = None
    keyMessages: List[KeyMessage] = Field(default_factory=list)


class BrandDocument(BaseDocument):
    entity_type: ClassVar[EntityType] = EntityType.BRAND
    container: ClassVar[str] = "brands"

    name: str
    description: str
    guidelines: Optional[BrandGuidelines] = None
