"""Browser session cookie model."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CookieRecord(BaseModel):
    """
    One cookie of a captured browser session.

    Accepts the JSON written by Playwright's ``context.cookies()`` as well as
    the richer Puppeteer/DevTools shape (unknown keys are ignored).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = -1
    http_only: bool = Field(default=False, alias="httpOnly")
    secure: bool = False
    same_site: Literal["Strict", "Lax", "None"] | None = Field(default=None, alias="sameSite")

    @field_validator("same_site", mode="before")
    @classmethod
    def _normalize_same_site(cls, value):
        if value is None or value == "":
            return None
        normalized = str(value).capitalize()
        if normalized in ("Strict", "Lax", "None"):
            return normalized
        # Chrome reports "no_restriction" / "unspecified"
        if normalized == "No_restriction":
            return "None"
        return None

    def to_playwright(self) -> dict:
        """Shape accepted by ``BrowserContext.add_cookies``."""
        return self.model_dump(by_alias=True, exclude_none=True)
