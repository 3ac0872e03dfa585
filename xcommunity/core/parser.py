"""BeautifulSoup-based extraction of member profiles from row and hover card HTML."""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Protocol

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from xcommunity.models.profile import Profile


# Selectors - centralized for easy updates when X changes their DOM
SELECTORS = {
    "user_cell": '[data-testid="UserCell"]',
    "avatar_container": '[data-testid^="UserAvatar-Container-"]',
    "hover_card": '[data-testid="HoverCard"]',
    "bio_candidates": 'div[dir="auto"]',
}

AVATAR_TESTID_PREFIX = "UserAvatar-Container-"

# Lower-cased phrases that mark a hover card block as chrome rather than bio
BIO_EXCLUDED_PHRASES = ("click to follow", "@", "following")

# Blocks with more spans than this are usually buttons or link rows
BIO_MAX_SPANS = 2

_FOLLOWERS_HREF = re.compile(r"followers$")
_SUFFIXED_COUNT = re.compile(r"(\d[\d,]*(?:\.\d+)?|\.\d+)")

_MULTIPLIERS = {
    "k": 1_000,
    "m": 1_000_000,
}


def parse_follower_count(text: str | None) -> int | None:
    """
    Convert a follower label to an integer.

    Examples:
        "12.3K" -> 12300
        "1.2M" -> 1200000
        "4,502" -> 4502
        "" -> None

    Never raises; anything unparseable yields None.
    """
    if not text:
        return None

    lowered = text.strip().lower()

    for suffix, multiplier in _MULTIPLIERS.items():
        if suffix in lowered:
            match = _SUFFIXED_COUNT.search(lowered)
            if not match:
                return None
            try:
                value = Decimal(match.group(1).replace(",", ""))
            except InvalidOperation:
                return None
            return int((value * multiplier).to_integral_value(rounding=ROUND_FLOOR))

    digits = re.sub(r"[^0-9]", "", lowered)
    if not digits:
        return None
    return int(digits)


def text_with_alt(node: Tag) -> str:
    """
    Visible text of a node with inline images replaced by their alt text.

    X renders emoji as ``<img alt="🚀">``; plain ``get_text()`` would drop them.
    """
    parts = []
    for child in node.descendants:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            if child.parent is None or child.parent.name not in ("script", "style"):
                parts.append(str(child))
        elif isinstance(child, Tag) and child.name == "img":
            parts.append(child.get("alt") or "")
    return "".join(parts)


@dataclass(frozen=True)
class BioBlock:
    """A candidate text block from a hover card."""

    text: str
    span_count: int


@dataclass(frozen=True)
class FollowerLink:
    """The hover card anchor pointing at the followers list."""

    href: str
    label: str


class MemberRow(Protocol):
    """Read access to one rendered member row."""

    def get_handle(self) -> str | None: ...

    def get_name(self) -> str: ...

    def get_avatar_url(self) -> str: ...


class HoverCard(Protocol):
    """Read access to a rendered hover card."""

    def get_bio_candidate_blocks(self) -> list[BioBlock]: ...

    def get_follower_link(self) -> FollowerLink | None: ...


def _root(html: str) -> Tag:
    soup = BeautifulSoup(html, "lxml")
    body = soup.body
    if body is not None:
        first = body.find(True, recursive=False)
        if first is not None:
            return first
    return soup


class HtmlMemberRow:
    """MemberRow backed by the outer HTML of a ``UserCell`` element."""

    def __init__(self, html: str):
        self.html = html
        self._el = _root(html)

    def get_handle(self) -> str | None:
        container = self._el.select_one(SELECTORS["avatar_container"])
        if container is None:
            return None
        testid = container.get("data-testid", "")
        handle = testid[len(AVATAR_TESTID_PREFIX):].strip()
        return handle or None

    def get_name(self) -> str:
        span = self._el.find("span")
        if span is None:
            return ""
        return span.get_text()

    def get_avatar_url(self) -> str:
        img = self._el.find("img")
        if img is None:
            return ""
        return img.get("src") or ""


class HtmlHoverCard:
    """HoverCard backed by the outer HTML of a ``HoverCard`` element."""

    def __init__(self, html: str):
        self.html = html
        self._el = _root(html)

    def get_bio_candidate_blocks(self) -> list[BioBlock]:
        return [
            BioBlock(
                text=text_with_alt(div).strip(),
                span_count=len(div.find_all("span")),
            )
            for div in self._el.select(SELECTORS["bio_candidates"])
        ]

    def get_follower_link(self) -> FollowerLink | None:
        for anchor in self._el.find_all("a"):
            href = anchor.get("href")
            if href and _FOLLOWERS_HREF.search(href):
                span = anchor.find("span")
                label = (span or anchor).get_text(strip=True)
                return FollowerLink(href=href, label=label)
        return None

    def shows_handle(self, handle: str) -> bool:
        """True when the card belongs to ``handle`` (an @mention or a profile link)."""
        wanted = handle.lower()
        mention = re.compile(rf"@{re.escape(wanted)}(?![a-z0-9_])")
        if mention.search(self._el.get_text(" ").lower()):
            return True
        return any(
            (a.get("href") or "").strip("/").lower() == wanted
            for a in self._el.find_all("a")
        )


def select_bio(blocks: list[BioBlock]) -> str:
    """
    Pick the block most likely to be the user's bio.

    Best-effort: the first non-empty block that mentions no handle, no
    follow/following call-to-action and has few interactive spans.
    """
    for block in blocks:
        lowered = block.text.lower()
        if not lowered:
            continue
        if any(phrase in lowered for phrase in BIO_EXCLUDED_PHRASES):
            continue
        if block.span_count > BIO_MAX_SPANS:
            continue
        return block.text
    return ""


def extract_profile(row: MemberRow, card: HoverCard | None) -> Profile | None:
    """
    Build a Profile from a member row and its hover card.

    Args:
        row: The rendered member row
        card: The hover card shown for this row, or None if it never appeared

    Returns:
        Profile, or None when the row carries no handle (not a profile row).
        Without a hover card the profile is degraded: empty bio, followers None.
    """
    handle = row.get_handle()
    if not handle:
        return None

    bio = ""
    followers = None
    if card is not None:
        bio = select_bio(card.get_bio_candidate_blocks())
        link = card.get_follower_link()
        if link is not None:
            followers = parse_follower_count(link.label)

    return Profile(
        handle=handle,
        name=row.get_name(),
        bio=bio,
        followers=followers,
        pfp_url=row.get_avatar_url(),
    )
