from typing import Any, Literal

from pydantic import BaseModel, Field

from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    Role,
    SearchFilters,
    StageResult,
    UserProfile,
)


class ContactSearchRequest(BaseModel):
    prompt: str = ""
    organizations: list[Organization] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)
    # Clamped server-side, so anything (even non-numeric) is accepted here
    max_contacts: Any = 15
    user_profile: UserProfile = Field(default_factory=UserProfile)
    filters: SearchFilters = Field(default_factory=SearchFilters)


class ContactsResponse(BaseModel):
    contacts: list[Contact]


class AnalyzeRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    user_profile_summary: str = ""


class DraftsRequest(BaseModel):
    contacts: list[Contact] = Field(..., min_length=1)
    user_profile: UserProfile = Field(default_factory=UserProfile)
    tone: str = "semi_formal"
    channel: str = "email"


class DraftsResponse(BaseModel):
    drafts: list[Draft]


class PromptSubmitRequest(BaseModel):
    prompt: str = ""
    mode: Literal["auto", "manual"] | None = None
    tone: str | None = None
    channel: str | None = None
    max_contacts: Any = None
    filters: SearchFilters | None = None


class SearchTriggerRequest(BaseModel):
    max_contacts: Any = None
    filters: SearchFilters | None = None


class DraftTriggerRequest(BaseModel):
    tone: str | None = None
    channel: str | None = None


class OrganizationIn(BaseModel):
    name: str


class RoleIn(BaseModel):
    title: str


class SelectionIn(BaseModel):
    contact_ids: list[str]


class DraftEditIn(BaseModel):
    body: str | None = None
    subject: str | None = None


class ProfilePatch(BaseModel):
    name: str | None = None
    current_role: str | None = None
    summary: str | None = None
    goals: str | None = None
    highlights: list[str] | None = None


class SessionCreated(BaseModel):
    session_id: str
    session: dict[str, Any]


class StageResponse(BaseModel):
    result: StageResult
    session: dict[str, Any]


class ContactSelectionIn(BaseModel):
    selected: bool = True


class HighlightIn(BaseModel):
    text: str


class ProfileTextIn(BaseModel):
    text: str = Field(..., max_length=20000)
