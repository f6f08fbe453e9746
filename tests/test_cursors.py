"""
Tests for the in-memory cursor store.
"""

from activity_sync.events import ActivityCategory
from activity_sync.polling.cursors import CursorStore, utc_now
from tests.factories import T0, at


class TestCursorStore:
    """Test cursor reads and non-decreasing advancement."""

    def setup_method(self):
        self.store = CursorStore()

    def test_unseen_cursor_reads_as_now_without_storing(self):
        before = utc_now()

        value = self.store.get("acme/widgets", ActivityCategory.ISSUES)

        assert value >= before
        assert self.store.peek("acme/widgets", ActivityCategory.ISSUES) is None

    def test_advance_and_get(self):
        self.store.advance("acme/widgets", ActivityCategory.COMMITS, T0)

        assert self.store.get("acme/widgets", ActivityCategory.COMMITS) == T0
        assert self.store.peek("acme/widgets", ActivityCategory.COMMITS) == T0

    def test_cursor_never_moves_backward(self):
        self.store.advance("acme/widgets", ActivityCategory.ISSUES, at(10))

        stored = self.store.advance("acme/widgets", ActivityCategory.ISSUES, at(5))

        assert stored == at(10)
        assert self.store.get("acme/widgets", ActivityCategory.ISSUES) == at(10)

    def test_categories_are_independent(self):
        self.store.advance("acme/widgets", ActivityCategory.ISSUES, at(10))

        assert self.store.peek("acme/widgets", ActivityCategory.PULL_REQUESTS) is None

    def test_initialize_sets_every_category(self):
        self.store.initialize("acme/widgets", T0)

        for category in ActivityCategory:
            assert self.store.peek("acme/widgets", category) == T0

    def test_discard_drops_repository(self):
        self.store.initialize("acme/widgets", T0)
        self.store.initialize("acme/gadgets", T0)

        self.store.discard("acme/widgets")

        assert self.store.peek("acme/widgets", ActivityCategory.ISSUES) is None
        assert self.store.peek("acme/gadgets", ActivityCategory.ISSUES) == T0

    def test_snapshot(self):
        self.store.advance("acme/widgets", ActivityCategory.COMMITS, T0)

        assert self.store.snapshot() == {
            "acme/widgets": {"commits": T0.isoformat()}
        }
