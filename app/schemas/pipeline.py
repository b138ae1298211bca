from pydantic import BaseModel, ConfigDict, Field, field_validator


def clamp_0_1(v: float) -> float:
    return max(0.0, min(1.0, v))


class Organization(BaseModel):
    name: str
    type: str = ""
    country: str = ""
    justification: str = ""


class Role(BaseModel):
    title: str
    org_types: list[str] = Field(default_factory=list)
    justification: str = ""


class PromptAnalysis(BaseModel):
    domain: str = "Outreach"
    countries: list[str] = Field(default_factory=list)
    org_types: list[str] = Field(default_factory=list)
    organizations: list[Organization] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)
    justification: str = ""

    @field_validator("org_types")
    @classmethod
    def dedupe_org_types(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class Contact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    title: str
    organization: str
    country: str
    linkedin_url: str = ""
    email: str = ""
    email_confidence: float = Field(..., ge=0, le=1)
    relevance_score: float = Field(..., ge=0, le=1)
    source: str


class StyleMetadata(BaseModel):
    tone: str
    length: str = "short"
    channel: str


class Draft(BaseModel):
    id: str
    contact_id: str
    subject: str | None = None
    body: str
    style_metadata: StyleMetadata


class UserProfile(BaseModel):
    name: str = ""
    current_role: str = ""
    summary: str = ""
    goals: str = ""
    highlights: list[str] = Field(default_factory=list)


class SearchFilters(BaseModel):
    seniority: list[str] = Field(default_factory=list)
    country: list[str] = Field(default_factory=list)

    @field_validator("country", mode="before")
    @classmethod
    def split_countries(cls, v):
        # The UI sends a free-text, comma separated field
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            return [c.strip() for c in v if isinstance(c, str) and c.strip()]
        return v

    @field_validator("seniority")
    @classmethod
    def drop_blank_seniority(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s.strip()]


class StageResult(BaseModel):
    """Outcome of one orchestrator trigger, rendered by the presentation layer."""

    stage: str
    outcome: str
    ok: bool = False
    notice: str = ""
    run_id: int = 0
