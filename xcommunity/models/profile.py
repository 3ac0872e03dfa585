"""Profile data model."""

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """A community member as collected from the member list and hover card."""

    model_config = ConfigDict(frozen=True)

    handle: str = Field(min_length=1)
    name: str = ""
    bio: str = ""
    followers: int | None = Field(default=None, ge=0)
    pfp_url: str = ""
