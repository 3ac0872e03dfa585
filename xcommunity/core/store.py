"""Ordered, deduplicated profile collection with atomic JSON checkpoints."""

from pathlib import Path

from pydantic import ValidationError

from xcommunity.config import UpdatePolicy
from xcommunity.core.exporter import load_profiles, save_profiles
from xcommunity.exceptions import StorageError
from xcommunity.logging import get_logger
from xcommunity.models.profile import Profile


class CollectionStore:
    """
    Handle -> Profile mapping in first-seen order, backed by a JSON file.

    The processed set is derived from the stored handles; it is not persisted
    on its own. Under ``UpdatePolicy.SKIP`` a handle is recorded once and
    never overwritten.

    Example:
        store = CollectionStore("universe.json")
        store.load()
        if not store.has("alice"):
            store.upsert(profile)
        store.checkpoint()
    """

    def __init__(
        self,
        path: str | Path,
        update_policy: UpdatePolicy = UpdatePolicy.SKIP,
    ):
        self.path = Path(path)
        self.update_policy = update_policy
        self._profiles: dict[str, Profile] = {}
        self._processed: set[str] = set()
        self._log = get_logger("store")

    def load(self) -> tuple[dict[str, Profile], set[str]]:
        """
        Load previously collected profiles from disk.

        A missing file is a first run and yields empty structures.

        Returns:
            (handle -> Profile mapping, processed handle set)

        Raises:
            StorageError: File exists but can't be read or parsed
        """
        self._profiles = {}
        self._processed = set()

        if not self.path.exists():
            self._log.info("store_empty", path=str(self.path))
            return dict(self._profiles), set(self._processed)

        try:
            profiles = load_profiles(self.path)
        except (OSError, ValidationError, ValueError) as e:
            raise StorageError(f"Could not load dataset {self.path}: {e}") from e

        for profile in profiles:
            # First occurrence wins if the file was edited by hand
            if profile.handle not in self._profiles:
                self._profiles[profile.handle] = profile
                self._processed.add(profile.handle)

        self._log.info("store_loaded", path=str(self.path), profiles=len(self._profiles))
        return dict(self._profiles), set(self._processed)

    def has(self, handle: str) -> bool:
        return handle in self._processed

    def get(self, handle: str) -> Profile | None:
        return self._profiles.get(handle)

    def upsert(self, profile: Profile) -> bool:
        """
        Record a profile.

        Args:
            profile: Freshly extracted profile

        Returns:
            True if the store changed
        """
        if profile.handle in self._profiles:
            if self.update_policy == UpdatePolicy.SKIP:
                return False
            if self._profiles[profile.handle] == profile:
                return False
            # dict assignment keeps the original insertion position
            self._profiles[profile.handle] = profile
            return True

        self._profiles[profile.handle] = profile
        self._processed.add(profile.handle)
        return True

    def checkpoint(self, path: str | Path | None = None) -> Path:
        """
        Write the whole collection to disk, replacing the previous file atomically.

        Args:
            path: Override destination (defaults to the store's path)

        Returns:
            Path written

        Raises:
            StorageError: Write failed; the run can't continue safely
        """
        target = Path(path) if path is not None else self.path
        try:
            written = save_profiles(self._profiles.values(), target)
        except OSError as e:
            raise StorageError(f"Could not write checkpoint {target}: {e}") from e
        self._log.info("checkpoint_written", path=str(written), profiles=len(self._profiles))
        return written

    def profiles(self) -> list[Profile]:
        return list(self._profiles.values())

    def handles(self) -> list[str]:
        return list(self._profiles)

    def size(self) -> int:
        return len(self._profiles)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, handle: object) -> bool:
        return handle in self._processed
