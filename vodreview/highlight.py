"""
Comment highlighting driven by playback position.

The controller matches the sampled playback second against the visible
comments and moves between two states, Idle and Highlighted(id):

- A comment matches while ``timestamp <= t <= timestamp + 5``. When several
  match, the one latest in list order wins.
- Entering a new match highlights it, scrolls it into the middle of the list
  (downwards only, and only while the viewer hasn't scrolled by hand) and
  arms a 3 second expiry unless playback is paused.
- Leaving every window returns to Idle and forgets the last match, so the
  same comment highlights again when its window is re-entered.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from .config import HIGHLIGHT_EXPIRY_SECONDS, MATCH_WINDOW_SECONDS, SCROLL_GUARD_SECONDS
from .logging import get_logger
from .models import Comment
from .scheduling import Scheduler, TimerSlot

logger = get_logger(__name__)


@dataclass
class ViewState:
    """Mutable state of one open review view."""
    current_time: int = 0
    is_paused: bool = False
    highlighted_id: Optional[int] = None
    user_scrolled: bool = False


class Viewport(Protocol):
    """The scrollable comment list as seen by the controller."""

    scroll_top: float
    client_height: float

    def item_geometry(self, comment_id: int) -> Optional[tuple[float, float]]:
        """Offset from the top of the list and height of a comment's row."""
        ...

    def scroll_to(self, top: float) -> None: ...


def find_match(
    comments: Sequence[Comment],
    current_time: int,
    window: int = MATCH_WINDOW_SECONDS,
) -> Optional[Comment]:
    """Latest comment in list order whose window contains ``current_time``."""
    for comment in reversed(comments):
        if comment.timestamp <= current_time <= comment.timestamp + window:
            return comment
    return None


def centered_scroll_top(offset_top: float, height: float, viewport_height: float) -> float:
    """Scroll offset that puts a row in the middle of the viewport."""
    return offset_top - viewport_height / 2 + height / 2


class HighlightController:
    """Highlight and auto-scroll state machine for one review view."""

    def __init__(
        self,
        scheduler: Scheduler,
        state: Optional[ViewState] = None,
        viewport: Optional[Viewport] = None,
        window: int = MATCH_WINDOW_SECONDS,
        expiry: float = HIGHLIGHT_EXPIRY_SECONDS,
    ):
        self.state = state if state is not None else ViewState()
        self.viewport = viewport
        self.window = window
        self.expiry = expiry
        self.last_scroll_target: Optional[float] = None
        self._last_matched_id: Optional[int] = None
        self._programmatic_scroll = False
        self._expiry = TimerSlot(scheduler, "highlight-expiry")
        self._scroll_guard = TimerSlot(scheduler, "scroll-guard")
        self._listeners: list[Callable[[Optional[int]], None]] = []

    @property
    def highlighted_id(self) -> Optional[int]:
        return self.state.highlighted_id

    @property
    def expiry_armed(self) -> bool:
        return self._expiry.armed

    def on_change(self, callback: Callable[[Optional[int]], None]) -> None:
        """Register a callback receiving the new highlighted id (or None)."""
        self._listeners.append(callback)

    def update(self, current_time: int, comments: Sequence[Comment]) -> Optional[int]:
        """Match ``current_time`` against the visible comments."""
        self.state.current_time = current_time
        match = find_match(comments, current_time, self.window)

        if match is None:
            self._last_matched_id = None
            if self.state.highlighted_id is not None:
                self._expiry.cancel()
                self._set_highlight(None)
            return None

        if match.id == self._last_matched_id:
            return self.state.highlighted_id

        self._last_matched_id = match.id
        self._set_highlight(match.id)

        if not self.state.user_scrolled:
            self._scroll_into_view(match.id)

        self._expiry.cancel()
        if not self.state.is_paused:
            self._arm_expiry(match.id)
        return match.id

    def set_paused(self, paused: bool) -> None:
        """Hold the highlight while paused; restart the expiry on resume."""
        if paused == self.state.is_paused:
            return
        self.state.is_paused = paused
        if paused:
            self._expiry.cancel()
        elif self.state.highlighted_id is not None:
            self._arm_expiry(self.state.highlighted_id)

    def scrolled(self) -> None:
        """Handle a scroll event on the comment list."""
        if self._programmatic_scroll:
            return
        if not self.state.user_scrolled:
            logger.debug("Manual scroll detected, auto-scroll suspended")
        self.state.user_scrolled = True

    def reset_scroll_lock(self) -> None:
        """Resume auto-scroll after a seek or when the view opens."""
        self.state.user_scrolled = False
        self.last_scroll_target = None

    def dispose(self) -> None:
        self._expiry.dispose()
        self._scroll_guard.dispose()
        self._listeners.clear()

    def _set_highlight(self, comment_id: Optional[int]) -> None:
        if comment_id == self.state.highlighted_id:
            return
        self.state.highlighted_id = comment_id
        logger.debug("Highlight -> %s", comment_id)
        for callback in list(self._listeners):
            callback(comment_id)

    def _arm_expiry(self, comment_id: int) -> None:
        self._expiry.arm(self.expiry, lambda: self._expire(comment_id))

    def _expire(self, comment_id: int) -> None:
        if self.state.highlighted_id != comment_id:
            logger.debug("Stale expiry for comment %s ignored", comment_id)
            return
        self._set_highlight(None)

    def _scroll_into_view(self, comment_id: int) -> None:
        viewport = self.viewport
        if viewport is None:
            return
        geometry = viewport.item_geometry(comment_id)
        if geometry is None:
            return

        offset_top, height = geometry
        target = centered_scroll_top(offset_top, height, viewport.client_height)
        # Never scroll upwards
        if target <= viewport.scroll_top:
            return

        self._programmatic_scroll = True
        self.last_scroll_target = target
        viewport.scroll_to(target)
        self._scroll_guard.arm(SCROLL_GUARD_SECONDS, self._end_programmatic_scroll)

    def _end_programmatic_scroll(self) -> None:
        self._programmatic_scroll = False
