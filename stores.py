"""
In-memory stores for watchlist entries, levels and visitors

Repository-style access to the console's mock state. Stores hand out the
live objects, so the match engine always sees the current data.
"""

import logging
import uuid
from typing import List, Optional, Dict, Any, Iterable

from watchlist_types import (
    ApprovalStatus,
    EntryStatus,
    VisitorEntry,
    VisitorStatus,
    WatchlistEntry,
    WatchlistLevel,
    utc_now,
)
from match_explainer import UNKNOWN_LEVEL_NAME, badge_classes

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""

    def __init__(self, message: str, code: str = "REPOSITORY_ERROR"):
        self.code = code
        super().__init__(message)


class EntityNotFoundError(RepositoryError):
    """Raised when a record is not found."""

    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND")


class DuplicateEntityError(RepositoryError):
    """Raised when a record would clash with an existing one."""

    def __init__(self, message: str):
        super().__init__(message, code="DUPLICATE")


def _new_id() -> str:
    return uuid.uuid4().hex


# ============================================
# WATCHLIST REPOSITORY
# ============================================

class WatchlistRepository:
    """Repository for watchlist entries."""

    # Fields an update may change; id and timestamps are managed here
    _UPDATABLE = {
        'first_name', 'last_name', 'alternative_first_names', 'alternative_last_names',
        'primary_email', 'additional_emails', 'primary_phone', 'additional_phones',
        'level_id', 'notes', 'reported_by', 'status', 'attachments',
    }

    def __init__(self, entries: Optional[Iterable[WatchlistEntry]] = None):
        self._entries: List[WatchlistEntry] = list(entries or [])

    def add(self, entry: WatchlistEntry) -> WatchlistEntry:
        """
        Add an entry, assigning an id if it has none.

        Raises:
            DuplicateEntityError: If an entry with the same id exists
        """
        if not entry.id:
            entry.id = _new_id()
        elif self._find(entry.id) is not None:
            raise DuplicateEntityError(f"Watchlist entry already exists: {entry.id}")
        entry.last_updated = utc_now()
        self._entries.append(entry)
        logger.debug(f"Added watchlist entry: {entry.id}")
        return entry

    def update(self, entry_id: str, **changes: Any) -> WatchlistEntry:
        """
        Apply field changes to an entry.

        Raises:
            EntityNotFoundError: If no entry has this id
            ValueError: If a change names a field that cannot be updated
        """
        entry = self.get_by_id(entry_id)
        unknown = set(changes) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update watchlist entry fields: {sorted(unknown)}")
        for name, value in changes.items():
            setattr(entry, name, value)
        entry.last_updated = utc_now()
        return entry

    def remove(self, entry_id: str) -> None:
        entry = self.get_by_id(entry_id)
        self._entries.remove(entry)
        logger.debug(f"Removed watchlist entry: {entry_id}")

    def deactivate(self, entry_id: str) -> WatchlistEntry:
        """Keep the entry but exclude it from matching"""
        return self.update(entry_id, status=EntryStatus.INACTIVE)

    def activate(self, entry_id: str) -> WatchlistEntry:
        return self.update(entry_id, status=EntryStatus.ACTIVE)

    def _find(self, entry_id: str) -> Optional[WatchlistEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def find(self, entry_id: str) -> Optional[WatchlistEntry]:
        return self._find(entry_id)

    def get_by_id(self, entry_id: str) -> WatchlistEntry:
        entry = self._find(entry_id)
        if entry is None:
            raise EntityNotFoundError(f"Watchlist entry not found: {entry_id}")
        return entry

    def list_all(self) -> List[WatchlistEntry]:
        return list(self._entries)

    def active_entries(self) -> List[WatchlistEntry]:
        return [entry for entry in self._entries if entry.is_active]

    def search(self, query: str) -> List[WatchlistEntry]:
        """Case-insensitive search over names, primary email and notes."""
        if not query or not query.strip():
            return self.list_all()
        needle = query.lower()
        return [
            entry for entry in self._entries
            if needle in (entry.first_name or "").lower()
            or needle in (entry.last_name or "").lower()
            or needle in (entry.primary_email or "").lower()
            or needle in (entry.notes or "").lower()
        ]

    def __len__(self) -> int:
        return len(self._entries)


# ============================================
# LEVEL REPOSITORY
# ============================================

class LevelRepository:
    """Repository for watchlist levels."""

    def __init__(self, levels: Optional[Iterable[WatchlistLevel]] = None):
        self._levels: List[WatchlistLevel] = []
        for level in levels or []:
            self.add(level)

    def _check_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        for level in self._levels:
            if level.id != exclude_id and level.name.strip().lower() == name.strip().lower():
                raise DuplicateEntityError(f"Watchlist level name already in use: {name}")

    def add(self, level: WatchlistLevel) -> WatchlistLevel:
        if not level.id:
            level.id = _new_id()
        elif self.get_by_id(level.id) is not None:
            raise DuplicateEntityError(f"Watchlist level already exists: {level.id}")
        self._check_unique_name(level.name)
        self._levels.append(level)
        return level

    def update(self, level_id: str, **changes: Any) -> WatchlistLevel:
        level = self.get_by_id(level_id)
        if level is None:
            raise EntityNotFoundError(f"Watchlist level not found: {level_id}")
        unknown = sorted(name for name in changes if name == 'id' or not hasattr(level, name))
        if unknown:
            raise ValueError(f"Cannot update watchlist level fields: {unknown}")
        if 'name' in changes:
            self._check_unique_name(changes['name'], exclude_id=level_id)
        for name, value in changes.items():
            setattr(level, name, value)
        return level

    def get_by_id(self, level_id: Optional[str]) -> Optional[WatchlistLevel]:
        for level in self._levels:
            if level.id == level_id:
                return level
        return None

    def get_name(self, level_id: Optional[str]) -> str:
        level = self.get_by_id(level_id)
        return level.name if level else UNKNOWN_LEVEL_NAME

    def get_badge_classes(self, level_id: Optional[str]) -> str:
        return badge_classes(self.get_by_id(level_id))

    def list_all(self) -> List[WatchlistLevel]:
        return list(self._levels)


# ============================================
# VISITOR REPOSITORY
# ============================================

class VisitorRepository:
    """Repository for registered visits."""

    def __init__(self, visitors: Optional[Iterable[VisitorEntry]] = None):
        self._visitors: List[VisitorEntry] = list(visitors or [])

    def add(self, visitor: VisitorEntry) -> VisitorEntry:
        if not visitor.id:
            visitor.id = _new_id()
        elif self._find(visitor.id) is not None:
            raise DuplicateEntityError(f"Visitor already exists: {visitor.id}")
        self._visitors.append(visitor)
        return visitor

    def _find(self, visitor_id: str) -> Optional[VisitorEntry]:
        for visitor in self._visitors:
            if visitor.id == visitor_id:
                return visitor
        return None

    def get_by_id(self, visitor_id: str) -> VisitorEntry:
        visitor = self._find(visitor_id)
        if visitor is None:
            raise EntityNotFoundError(f"Visitor not found: {visitor_id}")
        return visitor

    def update_status(self, visitor_id: str, status: VisitorStatus) -> VisitorEntry:
        visitor = self.get_by_id(visitor_id)
        visitor.status = status
        return visitor

    def update_watchlist_status(self, visitor_id: str, has_match: bool,
                                level_id: Optional[str] = None,
                                matched_entry_ids: Optional[List[str]] = None) -> VisitorEntry:
        visitor = self.get_by_id(visitor_id)
        visitor.watchlist_match = has_match
        visitor.watchlist_level_id = level_id
        visitor.matched_entry_ids = list(matched_entry_ids or [])
        return visitor

    def list_all(self) -> List[VisitorEntry]:
        return list(self._visitors)

    def search(self, query: str) -> List[VisitorEntry]:
        """Case-insensitive search over name, email, host and host company."""
        if not query or not query.strip():
            return self.list_all()
        needle = query.lower()
        return [
            visitor for visitor in self._visitors
            if needle in visitor.name.lower()
            or needle in visitor.email.lower()
            or needle in visitor.host.lower()
            or needle in visitor.host_company.lower()
        ]

    def pending_approval(self) -> List[VisitorEntry]:
        return [
            visitor for visitor in self._visitors
            if visitor.watchlist_match and visitor.approval_status == ApprovalStatus.PENDING
        ]

    def pending_approval_count(self) -> int:
        return len(self.pending_approval())

    def stats(self) -> Dict[str, int]:
        return {
            'total': len(self._visitors),
            'watchlist_matches': sum(1 for v in self._visitors if v.watchlist_match),
            'pending_approval': self.pending_approval_count(),
        }
