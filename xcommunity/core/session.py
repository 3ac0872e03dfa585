"""Persistence of the captured browser session (cookie jar)."""

import json
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from xcommunity.core.exporter import write_text_atomic
from xcommunity.exceptions import MissingSessionError, SessionError, StorageError
from xcommunity.models.cookie import CookieRecord


_COOKIE_LIST = TypeAdapter(list[CookieRecord])


class SessionStore:
    """Loads and saves the cookie jar produced by `xcommunity login`."""

    def __init__(self, path: str | Path = "data/cookies.json"):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> list[CookieRecord]:
        """
        Read the stored cookies.

        Returns:
            Cookie records in file order

        Raises:
            MissingSessionError: No session file, or it holds no cookies
            SessionError: The file is not a valid cookie list
        """
        if not self.exists():
            raise MissingSessionError(
                f"No session found at {self.path}. Run `xcommunity login` first."
            )

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            cookies = _COOKIE_LIST.validate_python(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            raise SessionError(f"Session file {self.path} is not a valid cookie list: {e}") from e
        except OSError as e:
            raise SessionError(f"Could not read session file {self.path}: {e}") from e

        if not cookies:
            raise MissingSessionError(
                f"Session file {self.path} holds no cookies. Run `xcommunity login` again."
            )
        return cookies

    def save(self, cookies: Iterable[CookieRecord | dict]) -> Path:
        """
        Overwrite the stored session atomically.

        Args:
            cookies: CookieRecord instances or raw browser cookie dicts

        Returns:
            Path to the session file
        """
        records = [
            c if isinstance(c, CookieRecord) else CookieRecord.model_validate(c)
            for c in cookies
        ]
        text = _COOKIE_LIST.dump_json(records, indent=2, by_alias=True).decode("utf-8")
        try:
            return write_text_atomic(self.path, text + "\n")
        except OSError as e:
            raise StorageError(f"Could not write session file {self.path}: {e}") from e
