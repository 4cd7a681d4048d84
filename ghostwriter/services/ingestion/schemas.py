"""
Apify payload models for the LinkedIn profile and posts actors.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghostwriter.utils.text_cleaning import clean_post_text


class ActorKind(str, Enum):
    PROFILE = "profile"
    POSTS = "posts"


class JobStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


APIFY_STATUS_MAP = {
    "SUCCEEDED": JobStatus.SUCCEEDED,
    "FAILED": JobStatus.FAILED,
    "ABORTED": JobStatus.FAILED,
    "TIMED-OUT": JobStatus.FAILED,
}


class JobState(BaseModel):
    job_id: str
    status: JobStatus
    raw_status: str
    result_location: Optional[str] = None  # dataset id


class ApifyRun(BaseModel):
    """The `data` object of an Apify actor-run response."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    status: str
    default_dataset_id: Optional[str] = Field(default=None, alias="defaultDatasetId")


class ParsedProfile(BaseModel):
    headline: Optional[str] = None
    about: Optional[str] = None
    location: Optional[str] = None
    experience_json: Optional[Any] = None
    raw_json: dict[str, Any] = Field(default_factory=dict)


class ParsedPost(BaseModel):
    raw_text: Optional[str] = None
    text: Optional[str] = None
    posted_at: Optional[datetime] = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    impressions_count: Optional[int] = None
    topic_hint: Optional[str] = None
    raw_json: dict[str, Any] = Field(default_factory=dict)


class ApifyPostItem(BaseModel):
    """One dataset item from the posts actor."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    text: Optional[str] = None
    num_likes: int = Field(default=0, alias="numLikes")
    num_comments: int = Field(default=0, alias="numComments")
    num_shares: int = Field(default=0, alias="numShares")
    posted_at_iso: Optional[datetime] = Field(default=None, alias="postedAtISO")

    @field_validator("num_likes", "num_comments", "num_shares", mode="before")
    @classmethod
    def _count_or_zero(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @field_validator("posted_at_iso", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Optional[datetime]:
        if not value or not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    def to_parsed(self, raw: dict[str, Any]) -> ParsedPost:
        return ParsedPost(
            raw_text=self.text,
            text=clean_post_text(self.text),
            posted_at=self.posted_at_iso,
            likes_count=self.num_likes,
            comments_count=self.num_comments,
            shares_count=self.num_shares,
            # The posts actor does not report impressions
            impressions_count=None,
            raw_json=raw,
        )


def parse_profile_item(raw: dict[str, Any]) -> ParsedProfile:
    """Map a profile-actor dataset item onto the stored profile shape."""
    basic_info = raw.get("basic_info") or {}
    location = basic_info.get("location") or {}
    return ParsedProfile(
        headline=basic_info.get("headline") or None,
        about=basic_info.get("about") or None,
        location=location.get("full") if isinstance(location, dict) else None,
        experience_json=raw.get("experience") or None,
        raw_json=raw,
    )


def parse_post_item(raw: dict[str, Any]) -> ParsedPost:
    return ApifyPostItem.model_validate(raw).to_parsed(raw)
