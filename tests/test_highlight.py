"""Tests for highlight.py - time matching, expiry and auto-scroll."""

import pytest

from vodreview.highlight import HighlightController, centered_scroll_top, find_match

from conftest import FakeViewport, make_comment


@pytest.fixture
def controller(scheduler):
    return HighlightController(scheduler)


class TestFindMatch:
    """Tests for the match window."""

    @pytest.mark.parametrize("t,expected", [(9, None), (10, 1), (12, 1), (15, 1), (16, None)])
    def test_closed_window(self, t, expected):
        comments = [make_comment(1, 10)]
        match = find_match(comments, t)
        assert (match.id if match else None) == expected

    def test_latest_in_list_order_wins(self, sample_comments):
        """Comments at 30 and 32 overlap; the later one in the list wins."""
        assert find_match(sample_comments, 33).id == 3
        assert find_match(sample_comments, 31).id == 2

    def test_empty(self):
        assert find_match([], 10) is None


class TestHighlightUpdate:
    """Tests for entering and leaving match windows."""

    def test_highlight_iff_in_window(self, scheduler):
        comments = [make_comment(1, 10)]
        for t in range(0, 30):
            controller = HighlightController(scheduler)
            controller.update(t, comments)
            assert (controller.highlighted_id == 1) == (10 <= t <= 15), t

    def test_match_sets_state(self, controller, sample_comments):
        assert controller.update(10, sample_comments) == 1
        assert controller.highlighted_id == 1
        assert controller.state.current_time == 10
        assert controller.expiry_armed

    def test_listeners_get_changes(self, controller, sample_comments):
        changes = []
        controller.on_change(changes.append)
        controller.update(10, sample_comments)
        controller.update(11, sample_comments)
        controller.update(20, sample_comments)
        assert changes == [1, None]

    def test_leaving_window_goes_idle(self, controller, sample_comments):
        controller.update(10, sample_comments)
        controller.update(20, sample_comments)
        assert controller.highlighted_id is None
        assert not controller.expiry_armed

    def test_expired_match_stays_cleared_inside_window(self, controller, scheduler, sample_comments):
        controller.update(10, sample_comments)
        scheduler.advance(3)
        assert controller.highlighted_id is None

        controller.update(12, sample_comments)
        assert controller.highlighted_id is None

    def test_retriggers_after_seek_out_and_back(self, controller, scheduler, sample_comments):
        controller.update(10, sample_comments)
        scheduler.advance(3)
        controller.update(20, sample_comments)
        controller.update(10, sample_comments)
        assert controller.highlighted_id == 1
        assert controller.expiry_armed

    def test_highlighted_comment_deleted(self, controller, sample_comments):
        """Removing the highlighted comment from the list returns to Idle."""
        controller.update(10, sample_comments)
        remaining = [c for c in sample_comments if c.id != 1]
        assert controller.update(11, remaining) is None
        assert controller.highlighted_id is None

    def test_filtered_out_comment_not_matched(self, controller, sample_comments):
        visible = [c for c in sample_comments if c.id != 3]
        assert controller.update(33, visible) == 2


class TestExpiry:
    """Tests for the highlight expiry timer."""

    def test_expires_after_three_seconds(self, controller, scheduler, sample_comments):
        controller.update(10, sample_comments)
        scheduler.advance(2.9)
        assert controller.highlighted_id == 1
        scheduler.advance(0.1)
        assert controller.highlighted_id is None

    def test_new_match_replaces_expiry(self, controller, scheduler, sample_comments):
        """The expiry for comment 2 never clears comment 3."""
        controller.update(30, sample_comments)
        scheduler.advance(2)
        controller.update(32, sample_comments)
        scheduler.advance(1.5)
        assert controller.highlighted_id == 3
        scheduler.advance(1.5)
        assert controller.highlighted_id is None

    def test_stale_expiry_ignored(self, controller, sample_comments):
        controller.update(30, sample_comments)
        controller.update(32, sample_comments)
        controller._expire(2)
        assert controller.highlighted_id == 3

    def test_paused_match_holds(self, controller, scheduler, sample_comments):
        controller.set_paused(True)
        controller.update(10, sample_comments)
        assert not controller.expiry_armed
        scheduler.advance(10)
        assert controller.highlighted_id == 1

    def test_pause_cancels_and_resume_rearms(self, controller, scheduler, sample_comments):
        controller.update(10, sample_comments)
        scheduler.advance(2)
        controller.set_paused(True)
        scheduler.advance(5)
        assert controller.highlighted_id == 1

        controller.set_paused(False)
        scheduler.advance(2.9)
        assert controller.highlighted_id == 1
        scheduler.advance(0.1)
        assert controller.highlighted_id is None

    def test_resume_without_highlight_arms_nothing(self, controller):
        controller.set_paused(True)
        controller.set_paused(False)
        assert not controller.expiry_armed

    def test_dispose_cancels_timers(self, controller, scheduler, sample_comments):
        controller.viewport = FakeViewport([c.id for c in sample_comments])
        controller.update(60, sample_comments)
        controller.dispose()
        assert scheduler.pending == 0
        scheduler.advance(5)
        assert controller.highlighted_id == 4


class TestAutoScroll:
    """Tests for scrolling the highlighted comment into view."""

    @pytest.fixture
    def viewport(self, sample_comments):
        return FakeViewport([c.id for c in sample_comments])

    @pytest.fixture
    def scrolling(self, scheduler, viewport):
        controller = HighlightController(scheduler, viewport=viewport)
        viewport.on_scroll = controller.scrolled
        return controller

    def test_centered_scroll_top(self):
        assert centered_scroll_top(300, 100, 300) == 200

    def test_scrolls_match_to_middle(self, scrolling, viewport, sample_comments):
        scrolling.update(60, sample_comments)
        assert viewport.scrolls == [200]
        assert scrolling.last_scroll_target == 200

    def test_never_scrolls_up(self, scrolling, viewport, sample_comments):
        for t in (10, 30, 32, 60, 70, 10):
            scrolling.update(t, sample_comments)
        assert viewport.scrolls == [100, 200]
        assert viewport.scrolls == sorted(viewport.scrolls)

    def test_own_scroll_event_ignored(self, scrolling, viewport, sample_comments):
        scrolling.update(32, sample_comments)
        assert viewport.scrolls == [100]
        assert not scrolling.state.user_scrolled

    def test_user_scroll_suspends_auto_scroll(self, scrolling, viewport, scheduler, sample_comments):
        scrolling.update(32, sample_comments)
        scheduler.advance(0.5)
        scrolling.scrolled()
        assert scrolling.state.user_scrolled

        scrolling.update(60, sample_comments)
        assert scrolling.highlighted_id == 4
        assert viewport.scrolls == [100]

    def test_seek_resets_scroll_lock(self, scrolling, viewport, scheduler, sample_comments):
        scrolling.update(32, sample_comments)
        scheduler.advance(0.5)
        scrolling.scrolled()
        scrolling.reset_scroll_lock()

        scrolling.update(95, sample_comments)
        assert viewport.scrolls == [100, 300]

    def test_missing_row_not_scrolled(self, scrolling, viewport, sample_comments):
        viewport.ids = []
        scrolling.update(60, sample_comments)
        assert scrolling.highlighted_id == 4
        assert viewport.scrolls == []
