"""Dashboard payload models.

Payload keys are camelCase on the wire; fields are snake_case in Python.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Generic, Literal, Optional, TypeVar, Union

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel, Generic[T]):
    """Standard success wrapper: {"success": true, "data": ...}"""
    success: bool = True
    data: T


# Home

class ActivityItem(CamelModel):
    id: str
    type: str
    detail: str = ""
    timestamp: Optional[str] = None


class QuickStats(CamelModel):
    notifications: int
    messages: int
    tasks: int


class Announcement(CamelModel):
    id: str
    title: str
    content: str = ""


class HomePayload(CamelModel):
    recent_activity: list[ActivityItem]
    quick_stats: QuickStats
    announcements: list[Announcement]


# Search

class ContentResult(CamelModel):
    id: str
    type: Literal["content"] = "content"
    title: str
    description: Optional[str] = None
    match_reason: str


class UserResult(CamelModel):
    id: str
    type: Literal["user"] = "user"
    name: Optional[str] = None
    email: Optional[str] = None
    match_reason: str


class SearchPayload(CamelModel):
    recent_searches: list[str]
    popular_searches: list[str]
    results: list[Annotated[Union[ContentResult, UserResult], Field(discriminator="type")]]


# Inbox

class Sender(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None


class InboxMessage(CamelModel):
    id: str
    sender: Sender = Field(alias="from")
    subject: str
    preview: str
    is_read: bool
    timestamp: Optional[str] = None


class InboxPayload(CamelModel):
    unread_count: int
    messages: list[InboxMessage]


# For you

class Recommendation(CamelModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    read_time: str


class SuggestedConnection(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    mutual_connections: int


class ForYouPayload(CamelModel):
    recommended_content: list[Recommendation]
    suggested_connections: list[SuggestedConnection]
    trending_topics: list[str]


# Live

class LiveEvent(CamelModel):
    id: str
    title: str
    host: str
    participants: int
    start_time: str
    estimated_duration: str
    join_url: str


class UpcomingEvent(CamelModel):
    id: str
    title: str
    host: str
    scheduled_time: str
    duration: str
    register_url: str


class Recording(CamelModel):
    id: str
    title: str
    host: str
    recorded_date: str
    duration: str
    view_url: str


class LivePayload(CamelModel):
    current_live_events: list[LiveEvent]
    upcoming_events: list[UpcomingEvent]
    recent_recordings: list[Recording]
