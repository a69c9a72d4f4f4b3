"""Base classes for repository backends.

A backend accumulates package additions in memory and persists them only
when ``write`` is called. Each backend kind keeps one :class:`PackageIndex`
per physical location, opened lazily through its :class:`Repository`.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar

from ..common.errors import ConflictError
from ..common.logger import get_logger
from ..formats.base import PackageMetadata

logger = get_logger("bulkrepo.repos")


class ConflictResolution(Enum):
    """What to do when a package already occupies its slot in an index."""

    ERROR = "error"
    KEEP = "keep"
    REPLACE = "replace"


EntryT = TypeVar("EntryT")


class PackageIndex(ABC, Generic[EntryT]):
    """In-memory index of one repository location.

    Entries are keyed by :meth:`package_key`. Packages added during the run
    are remembered separately so that ``write`` knows which files to copy.
    """

    def __init__(self) -> None:
        self._entries: Dict[Hashable, EntryT] = {}
        self._pending: Dict[Hashable, PackageMetadata] = {}

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable location, used in messages."""
        pass

    @abstractmethod
    def package_key(self, pkg: PackageMetadata) -> Hashable:
        """Return the uniqueness key of ``pkg`` in this index."""
        pass

    @abstractmethod
    def make_entry(self, pkg: PackageMetadata) -> EntryT:
        """Build the stored index entry for ``pkg``."""
        pass

    @abstractmethod
    def write(self) -> None:
        """Persist the index and any newly added package files."""
        pass

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable) -> Optional[EntryT]:
        """Return the entry stored under ``key``, if any."""
        return self._entries.get(key)

    def keys(self) -> List[Hashable]:
        """Return all keys in sorted order."""
        return sorted(self._entries)

    def add_package(self, pkg: PackageMetadata, on_conflict: ConflictResolution) -> bool:
        """Insert ``pkg`` into the index.

        Args:
            pkg: Package to add
            on_conflict: Policy applied when the key is already present

        Returns:
            True if the index now holds ``pkg``, False if an existing entry
            was kept

        Raises:
            ConflictError: If the key exists and the policy is ERROR
        """
        key = self.package_key(pkg)
        if key in self._entries:
            if on_conflict is ConflictResolution.ERROR:
                raise ConflictError(
                    f"package {pkg.get_package_key()} ({pkg.path}) "
                    f"already exists in {self.location}"
                )
            if on_conflict is ConflictResolution.KEEP:
                logger.debug(f"Keeping existing {pkg.get_package_key()} in {self.location}")
                return False
            logger.debug(f"Replacing {pkg.get_package_key()} in {self.location}")

        self._entries[key] = self.make_entry(pkg)
        self._pending[key] = pkg
        logger.debug(f"Added {pkg.get_package_key()} to {self.location}")
        return True


IndexT = TypeVar("IndexT", bound=PackageIndex)


class Repository(ABC, Generic[IndexT]):
    """All indexes of one backend kind opened during a run."""

    def __init__(self) -> None:
        self._indexes: Dict[Hashable, IndexT] = {}

    def _open(self, locator: Hashable, factory: Callable[[], IndexT]) -> IndexT:
        index = self._indexes.get(locator)
        if index is None:
            index = factory()
            self._indexes[locator] = index
            logger.debug(f"Opened {index.location}")
        return index

    @property
    def indexes(self) -> List[IndexT]:
        """Indexes opened so far, in opening order."""
        return list(self._indexes.values())

    def write(self) -> None:
        """Write every opened index, then any per-repository metadata."""
        for index in self._indexes.values():
            index.write()
        self._finish()

    def _finish(self) -> None:
        """Hook run after all indexes are written."""
