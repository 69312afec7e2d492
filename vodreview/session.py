"""
One open review view: a video, its comment list and the controls around it.

The session owns every stateful piece of the view (tracker, highlight
controller, store, composers and filters) and tears all of them down in
``close``. Only the blocking HTTP calls run in worker threads; their
results are applied on the event loop, and anything that completes after
``close`` is ignored.
"""

import asyncio
from typing import Callable, Optional

from .composer import MentionComposer
from .filters import FacetOptions, FilterSelection, apply_filters, facet_options
from .highlight import HighlightController, ViewState, Viewport
from .logging import get_logger
from .models import Comment, Identity, MentionUser
from .playback import PlaybackTracker, PlayerWidget
from .scheduling import Scheduler
from .store import CommentApiClient, CommentApiError, CommentStore

logger = get_logger(__name__)


class ReviewSession:
    """State and behavior of one open review view."""

    def __init__(
        self,
        scrim_id: str,
        client: Optional[CommentApiClient] = None,
        identity: Optional[Identity] = None,
        scheduler: Optional[Scheduler] = None,
        viewport: Optional[Viewport] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.scrim_id = scrim_id
        self.identity = identity
        self.scheduler = scheduler if scheduler is not None else asyncio.get_running_loop()
        self.state = ViewState()
        self.selection = FilterSelection()
        self.mention_users: list[MentionUser] = []
        self.closed = False
        self._tasks: set[asyncio.Task] = set()

        self.store = CommentStore(client or CommentApiClient(), scrim_id, notify=notify)
        self.tracker = PlaybackTracker(self.scheduler)
        self.controller = HighlightController(self.scheduler, state=self.state, viewport=viewport)

        self.tracker.on_time(self._on_time)
        self.tracker.on_pause_change(self.controller.set_paused)
        self.tracker.on_seek(lambda seconds: self.controller.reset_scroll_lock())

        self.composer = MentionComposer(on_submit=lambda content: self._spawn(self.submit_comment()))
        self.edit_composer = MentionComposer(
            on_submit=lambda content: self._spawn(self.save_edit()),
            on_cancel=self.cancel_edit,
        )

    # =========================================================================
    # Comment list
    # =========================================================================

    @property
    def comments(self) -> list[Comment]:
        return self.store.comments

    @property
    def visible_comments(self) -> list[Comment]:
        return apply_filters(self.store.comments, self.selection)

    @property
    def facets(self) -> FacetOptions:
        return facet_options(self.store.comments)

    async def open(self) -> None:
        """Load the roster and the comments; auto-scroll starts unlocked."""
        self.controller.reset_scroll_lock()
        try:
            users = await asyncio.to_thread(self.store.client.list_mention_users)
        except CommentApiError as e:
            logger.warning("Could not load users for mentions: %s", e)
            users = []
        if self.closed:
            return
        self.mention_users = users
        self.composer.users = users
        self.edit_composer.users = users
        await self.refresh()

    async def refresh(self) -> bool:
        ok = await self.store.fetch()
        self._rematch()
        return ok

    # =========================================================================
    # Player events
    # =========================================================================

    def player_ready(self, widget: PlayerWidget) -> None:
        if self.closed:
            return
        self.tracker.attach(widget)

    def player_state_changed(self, state: int) -> None:
        self.tracker.state_changed(state)

    def seek_to(self, seconds: int) -> bool:
        return self.tracker.seek_to(seconds)

    def comment_clicked(self, comment_id: int) -> bool:
        """Seek to a comment, unless it is the one being edited."""
        if comment_id == self.store.editing_id:
            return False
        comment = self.store.get(comment_id)
        if comment is None:
            return False
        return self.seek_to(comment.timestamp)

    def scrolled(self) -> None:
        self.controller.scrolled()

    # =========================================================================
    # Filters
    # =========================================================================

    def set_author(self, author: Optional[str]) -> None:
        self.selection.author = author
        self._rematch()

    def toggle_tag(self, tag: str) -> None:
        self.selection.toggle_tag(tag)
        self._rematch()

    def toggle_mentioned(self, name: str) -> None:
        self.selection.toggle_mentioned(name)
        self._rematch()

    def clear_filters(self) -> None:
        self.selection.clear()
        self._rematch()

    # =========================================================================
    # Writes
    # =========================================================================

    def can_edit(self, comment: Comment) -> bool:
        return (
            self.identity is not None
            and self.identity.can_edit(comment)
            and self.store.is_editable(comment.id)
        )

    def can_delete(self, comment: Comment) -> bool:
        return self.identity is not None and self.identity.can_delete(comment)

    async def submit_comment(self) -> Optional[Comment]:
        """Post the new-comment text at the current playback second."""
        content = self.composer.text.strip()
        if not content or self.identity is None or self.closed:
            return None
        comment = await self.store.create(self.state.current_time, content)
        if comment is None or self.closed:
            return None
        self.composer.clear()
        self._rematch()
        return comment

    def begin_edit(self, comment_id: int) -> bool:
        comment = self.store.get(comment_id)
        if comment is None or not self.can_edit(comment):
            return False
        if not self.store.begin_edit(comment_id):
            return False
        self.edit_composer.reset(self.store.edit_buffer)
        return True

    def cancel_edit(self) -> None:
        self.store.cancel_edit()
        self.edit_composer.clear()

    async def save_edit(self) -> bool:
        if self.store.editing_id is None or self.closed:
            return False
        self.store.edit_buffer = self.edit_composer.text
        ok = await self.store.save_edit()
        if ok and not self.closed:
            self.edit_composer.clear()
            self._rematch()
        return ok

    async def delete(self, comment_id: int) -> bool:
        comment = self.store.get(comment_id)
        if comment is None or not self.can_delete(comment) or self.closed:
            return False
        if self.store.editing_id == comment_id:
            self.edit_composer.clear()
        ok = await self.store.remove(comment_id)
        if not self.closed:
            self._rematch()
        return ok

    # =========================================================================
    # Teardown
    # =========================================================================

    def close(self) -> None:
        """Stop sampling, cancel timers and ignore any pending responses."""
        if self.closed:
            return
        self.closed = True
        self.tracker.dispose()
        self.controller.dispose()
        self.store.close()
        logger.debug("Review session for scrim %s closed", self.scrim_id)

    def _on_time(self, current_time: int) -> None:
        self.controller.update(current_time, self.visible_comments)

    def _rematch(self) -> None:
        if self.closed or not self.tracker.ready:
            return
        self.controller.update(self.state.current_time, self.visible_comments)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
