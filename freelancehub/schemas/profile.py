"""Profile-related Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, Field, HttpUrl, TypeAdapter, ValidationError, computed_field

from freelancehub.models.user import UserType
from freelancehub.schemas.common import CamelModel

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # Empty string clears a link
    if value:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("Invalid URL")
    return value


UrlOrEmpty = Annotated[str, AfterValidator(_check_url)]


class PortfolioLinks(CamelModel):
    behance: Optional[UrlOrEmpty] = None
    dribbble: Optional[UrlOrEmpty] = None
    github: Optional[UrlOrEmpty] = None
    youtube: Optional[UrlOrEmpty] = None
    website: Optional[UrlOrEmpty] = None


class ProfileCreate(CamelModel):
    """Schema for POST /api/profile."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    professional_title: Optional[str] = Field(None, min_length=2, max_length=255)
    category: Optional[str] = Field(None, max_length=255)
    experience_level: Optional[str] = Field(None, max_length=100)
    skills: list[str] = Field(default_factory=list)
    bio: Optional[str] = Field(None, max_length=500)
    timezone: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[UrlOrEmpty] = None
    portfolio_links: Optional[PortfolioLinks] = None

    def to_columns(self) -> dict:
        """Column values for a new row, absent optional fields defaulted."""
        values = self.model_dump(exclude={"portfolio_links"})
        values["portfolio_links"] = _links_to_column(self.portfolio_links)
        return values


class ProfileUpdate(ProfileCreate):
    """Schema for PATCH /api/profile.

    Every field is independently present or absent; ``changes()`` only
    returns the ones the client actually sent.
    """

    skills: Optional[list[str]] = None

    def changes(self) -> dict:
        values = self.model_dump(include=self.model_fields_set - {"portfolio_links"})
        if "skills" in values and values["skills"] is None:
            values["skills"] = []
        if "portfolio_links" in self.model_fields_set:
            values["portfolio_links"] = _links_to_column(self.portfolio_links)
        return values


def _links_to_column(links: Optional[PortfolioLinks]) -> dict:
    if links is None:
        return {}
    return links.model_dump(exclude_none=True)


class ProfileResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    professional_title: Optional[str] = None
    category: Optional[str] = None
    experience_level: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    bio: Optional[str] = None
    timezone: Optional[str] = None
    country: Optional[str] = None
    avatar_url: Optional[str] = None
    portfolio_links: dict[str, str] = Field(default_factory=dict)
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def completed(self) -> bool:
        return self.completed_at is not None


class PublicProfileResponse(ProfileResponse):
    """Profile joined with the owner's public account fields."""

    email: str
    user_type: UserType
    user_created_at: datetime
