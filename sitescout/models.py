# sitescout/models.py
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Contract(BaseModel):
    """Immutable base for everything that crosses the model boundary."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Source(Contract):
    title: str
    uri: str

class PageEntry(Contract):
    page: str
    description: str

class Requirements(Contract):
    functional: Tuple[str, ...]
    technical: Tuple[str, ...]
    user_experience: Tuple[str, ...] = Field(alias="userExperience")

class AnalysisPayload(Contract):
    """
    The schema-constrained part of a report, exactly as the model returns it.
    Grounding sources are not part of the model's JSON and are attached afterwards.
    """
    url: str
    summary: str
    purpose: str
    how_it_works: str = Field(alias="howItWorks")
    requirements: Requirements
    structure: Tuple[PageEntry, ...]

    def with_sources(self, sources: Tuple[Source, ...]) -> "SiteAnalysis":
        return SiteAnalysis(**dict(self), sources=tuple(sources))

class SiteAnalysis(AnalysisPayload):
    sources: Tuple[Source, ...] = ()

class HistoryEntry(Contract):
    id: str
    url: str
    timestamp: int  # milliseconds since the epoch
    data: SiteAnalysis


class AnalysisStatus(str, Enum):
    IDLE = "IDLE"
    CRAWLING = "CRAWLING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class ChatMessage(Contract):
    role: Literal["user", "assistant"]
    content: str
    is_deep_dive: Optional[bool] = Field(default=None, alias="isDeepDive")
    sources: Optional[Tuple[Source, ...]] = None

class FollowUpAnswer(Contract):
    answer: str
    is_deep_dive: bool = Field(alias="isDeepDive")
    sources: Tuple[Source, ...] = ()


# --- HTTP request / response models ---

class AnalysisRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must not be empty")
        return value

class ChatRequest(BaseModel):
    question: str

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be empty")
        return value

class ChatResponse(Contract):
    answer: str
    is_deep_dive: bool = Field(alias="isDeepDive")
    sources: Tuple[Source, ...] = ()
    messages: List[ChatMessage]

class StatusResponse(Contract):
    status: AnalysisStatus
    url: Optional[str] = None
    progress_message: Optional[str] = Field(default=None, alias="progressMessage")
    error: Optional[str] = None
    analysis: Optional[SiteAnalysis] = None
