"""Custom exception hierarchy for xcommunity."""


class XCommunityError(Exception):
    """Base exception for all xcommunity errors."""


class SessionError(XCommunityError):
    """Stored browser session is unusable."""


class MissingSessionError(SessionError):
    """No session was captured yet - run `xcommunity login` first."""


class PageLoadError(XCommunityError):
    """Community page never rendered any member rows."""


class StorageError(XCommunityError):
    """Failed to read or write the dataset on disk."""


class ExtractionError(XCommunityError):
    """A member row or hover card could not be read from the page."""


class DownloadError(XCommunityError):
    """Failed to download an avatar image."""


class DiscoveryError(XCommunityError):
    """Invalid transition of the scroll discovery loop."""


class ConfigError(XCommunityError):
    """Invalid configuration."""
