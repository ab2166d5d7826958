"""
Tests for the in-memory watchlist, level and visitor stores.
"""

import pytest

from config_manager import ConfigManager
from stores import (
    DuplicateEntityError,
    EntityNotFoundError,
    LevelRepository,
    VisitorRepository,
    WatchlistRepository,
)
from watchlist_types import (
    ApprovalStatus,
    EntryStatus,
    VisitorEntry,
    VisitorStatus,
    WatchlistEntry,
    WatchlistLevel,
)


@pytest.fixture
def watchlist():
    return WatchlistRepository([
        WatchlistEntry(id="1", first_name="Willy", last_name="Wonka",
                       alternative_first_names=["William"],
                       primary_email="willy.wonka@chocolate.com",
                       notes="Previous incidents of unauthorized access attempts."),
        WatchlistEntry(id="2", first_name="Jane", last_name="Smith",
                       alternative_last_names=["Johnson"],
                       primary_email="jane.smith@example.com"),
    ])


@pytest.fixture
def levels():
    return LevelRepository(ConfigManager.create().watchlist_levels())


class TestWatchlistRepository:

    def test_add_assigns_id(self, watchlist):
        entry = watchlist.add(WatchlistEntry(id="", first_name="Ann", last_name="Lee"))
        assert entry.id
        assert watchlist.get_by_id(entry.id) is entry
        assert len(watchlist) == 3

    def test_add_duplicate_id(self, watchlist):
        with pytest.raises(DuplicateEntityError):
            watchlist.add(WatchlistEntry(id="1", first_name="A", last_name="B"))

    def test_aliases_follow_alternative_names(self, watchlist):
        assert watchlist.get_by_id("1").aliases == ["William"]
        assert watchlist.get_by_id("2").aliases == ["Johnson"]

    def test_update_touches_timestamp(self, watchlist):
        entry = watchlist.get_by_id("2")
        before = entry.last_updated
        watchlist.update("2", notes="Seen in lobby")
        assert entry.notes == "Seen in lobby"
        assert entry.last_updated >= before

    def test_update_rejects_unknown_field(self, watchlist):
        with pytest.raises(ValueError):
            watchlist.update("2", id="99")

    def test_remove(self, watchlist):
        watchlist.remove("1")
        with pytest.raises(EntityNotFoundError):
            watchlist.get_by_id("1")
        assert watchlist.find("1") is None

    def test_deactivate_keeps_entry_out_of_active(self, watchlist):
        watchlist.deactivate("1")
        assert watchlist.get_by_id("1").status == EntryStatus.INACTIVE
        assert [e.id for e in watchlist.active_entries()] == ["2"]
        assert len(watchlist.list_all()) == 2

        watchlist.activate("1")
        assert len(watchlist.active_entries()) == 2

    @pytest.mark.parametrize("query,expected", [
        ("wonka", ["1"]),
        ("EXAMPLE.COM", ["2"]),
        ("unauthorized", ["1"]),
        ("   ", ["1", "2"]),
        ("zzz", []),
    ])
    def test_search(self, watchlist, query, expected):
        assert [e.id for e in watchlist.search(query)] == expected


class TestLevelRepository:

    def test_lookup(self, levels):
        assert levels.get_name("high-risk") == "High risk"
        assert levels.get_name("missing") == "Unknown"
        assert levels.get_badge_classes("medium-priority") == "bg-yellow-100 text-yellow-800"
        assert levels.get_badge_classes("missing") == "bg-gray-100 text-gray-800"

    def test_unique_names(self, levels):
        with pytest.raises(DuplicateEntityError):
            levels.add(WatchlistLevel(id="", name="high RISK"))

    def test_rename(self, levels):
        levels.update("low-priority", name="Informational")
        assert levels.get_name("low-priority") == "Informational"
        with pytest.raises(DuplicateEntityError):
            levels.update("low-priority", name="Medium priority")

    def test_update_missing_level(self, levels):
        with pytest.raises(EntityNotFoundError):
            levels.update("missing", name="X")

    def test_rejected_update_changes_nothing(self, levels):
        with pytest.raises(ValueError):
            levels.update("low-priority", name="Renamed", bogus=1)
        with pytest.raises(ValueError):
            levels.update("low-priority", color="red", id="other")

        level = levels.get_by_id("low-priority")
        assert level.name == "Low priority"
        assert level.color == "gray"

    def test_duplicate_rename_changes_nothing(self, levels):
        with pytest.raises(DuplicateEntityError):
            levels.update("low-priority", system_logging=False, name="High risk")
        assert levels.get_by_id("low-priority").system_logging is True


class TestVisitorRepository:

    def test_pending_approval(self):
        visitors = VisitorRepository([
            VisitorEntry(id="a", name="Jane Smith", host="Alex", host_company="Acme",
                         watchlist_match=True, approval_status=ApprovalStatus.PENDING),
            VisitorEntry(id="b", name="Bob Ray", watchlist_match=True,
                         approval_status=ApprovalStatus.APPROVED),
            VisitorEntry(id="c", name="Cy Dee"),
        ])
        assert [v.id for v in visitors.pending_approval()] == ["a"]
        assert visitors.pending_approval_count() == 1
        assert visitors.stats() == {'total': 3, 'watchlist_matches': 2, 'pending_approval': 1}
        assert [v.id for v in visitors.search("acme")] == ["a"]

    def test_update_status_and_watchlist(self):
        visitors = VisitorRepository()
        visitor = visitors.add(VisitorEntry(id="", name="Jane Smith"))
        visitors.update_status(visitor.id, VisitorStatus.CHECKED_IN)
        visitors.update_watchlist_status(visitor.id, True, "high-risk", ["2"])
        assert visitor.status == VisitorStatus.CHECKED_IN
        assert visitor.watchlist_level_id == "high-risk"
        assert visitor.matched_entry_ids == ["2"]

    def test_missing_visitor(self):
        with pytest.raises(EntityNotFoundError) as exc_info:
            VisitorRepository().get_by_id("nope")
        assert exc_info.value.code == "NOT_FOUND"
