"""
Domain models for postings, job summaries and company profiles.

JobPosting and friends mirror the search provider payload and ignore
unknown keys. JobSummary and CompanyProfile are the persisted records;
callers derive new values with model_copy(update=...) rather than
mutating them in place.
"""
import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from core.utils import ensure_utc, utc_now

SOURCE_NAME = "Google Jobs"


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _none_to_dict(value: Any) -> Any:
    return {} if value is None else value


# Provider payloads send explicit nulls for missing values
Text = Annotated[str, BeforeValidator(_none_to_empty)]


# ============================================================================
# SEARCH PROVIDER PAYLOADS
# ============================================================================

class JobHighlight(BaseModel):
    model_config = ConfigDict(extra='ignore')

    title: Text = ""
    items: Annotated[List[str], BeforeValidator(_none_to_list)] = Field(default_factory=list)


class ApplyOption(BaseModel):
    model_config = ConfigDict(extra='ignore')

    title: Text = ""
    link: Text = ""


class JobPosting(BaseModel):
    """A raw posting as returned by the Google Jobs engine."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    job_id: Text = ""
    title: Text = ""
    company_name: Text = ""
    location: Text = ""
    via: Text = ""
    share_link: Text = ""
    description: Text = ""
    job_highlights: Annotated[List[JobHighlight], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    apply_options: Annotated[List[ApplyOption], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    extensions: Annotated[List[str], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    detected_extensions: Annotated[Dict[str, Any], BeforeValidator(_none_to_dict)] = Field(default_factory=dict)


class SerpApiPagination(BaseModel):
    model_config = ConfigDict(extra='ignore')

    next_page_token: Optional[str] = None


class GoogleJobsResult(BaseModel):
    model_config = ConfigDict(extra='ignore')

    jobs_results: Annotated[List[JobPosting], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    serpapi_pagination: Optional[SerpApiPagination] = None
    error: Optional[str] = None

    @property
    def next_page_token(self) -> Optional[str]:
        if self.serpapi_pagination is None:
            return None
        return self.serpapi_pagination.next_page_token


class OrganicResult(BaseModel):
    model_config = ConfigDict(extra='ignore')

    position: Optional[int] = None
    title: Text = ""
    link: Text = ""
    snippet: Text = ""


class GoogleSearchResult(BaseModel):
    model_config = ConfigDict(extra='ignore')

    organic_results: Annotated[List[OrganicResult], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    error: Optional[str] = None


# ============================================================================
# AI RESULTS
# ============================================================================

class HierarchyItem(BaseModel):
    """One person in an organization: name plus job title."""
    model_config = ConfigDict(extra='ignore')

    name: Text = ""
    title: Text = ""


class HierarchyResults(BaseModel):
    """Ordered people, highest rank first."""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    org_hierarchy: Annotated[List[HierarchyItem], BeforeValidator(_none_to_list)] = Field(
        default_factory=list,
        validation_alias=AliasChoices("org_hierarchy", "orghierarchy"),
    )

    @property
    def is_empty(self) -> bool:
        return not self.org_hierarchy


class DivisionInference(BaseModel):
    """Division label for one posting. Not persisted on its own."""
    model_config = ConfigDict(extra='ignore')

    division: Text = ""
    reasoning: Text = ""
    confidence: int = 0

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
        return int(max(0.0, min(100.0, number)))


# ============================================================================
# PERSISTED RECORDS
# ============================================================================

class JobSummary(BaseModel):
    """Canonical record of an accepted posting."""
    model_config = ConfigDict(extra='ignore')

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str
    company_id: str
    company_name: str
    hiring_agency: Text = ""
    job_title: Text = ""
    location: Text = ""
    job_description: Text = ""
    division: Text = ""
    confidence: int = Field(default=0, ge=0, le=100)
    reasoning: Text = ""
    source_name: str = SOURCE_NAME
    source_link: Text = ""
    job_highlights: Annotated[List[JobHighlight], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    content_hash: Text = ""
    posted_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("posted_at", "created_at", "updated_at", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CompanyProfile(BaseModel):
    """Aggregated per-company division and hierarchy data."""
    model_config = ConfigDict(extra='ignore')

    company_id: str
    company_name: Text = ""
    division: Text = ""
    divisions: Annotated[List[str], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    hierarchy_results: HierarchyResults = Field(default_factory=HierarchyResults)
    domain_name: Text = ""
    notes: Text = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("hierarchy_results", mode="before")
    @classmethod
    def _none_to_hierarchy(cls, value: Any) -> Any:
        return HierarchyResults() if value is None else value

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def same_content(self, other: "CompanyProfile") -> bool:
        """Equal on everything except the timestamps."""
        exclude = {"created_at", "updated_at"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)
