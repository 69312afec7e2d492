"""
Comment API client and the local comment store.

The store never patches its list locally: every successful write is followed
by a full re-fetch, so what the view shows is always what the server holds.
Failures leave the list untouched and surface as a notice.
"""

import asyncio
from typing import Callable, Optional

import requests
from pydantic import ValidationError

from .config import get_api_url, get_timeout
from .logging import get_logger
from .models import Comment, MentionUser

logger = get_logger(__name__)


class CommentApiError(Exception):
    """Raised when a Comment API request fails or reports ``success: false``."""

    pass


class CommentApiClient:
    """Thin wrapper over the bot API's comment and roster endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else get_timeout()
        self.session = session or requests.Session()

    @property
    def comments_url(self) -> str:
        return f"{self.base_url}/api/vod-comments"

    @property
    def mappings_url(self) -> str:
        return f"{self.base_url}/api/user-mappings"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, url: str, action: str, **kwargs) -> dict:
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise CommentApiError(f"Failed to {action}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.ok or not data.get("success"):
            raise CommentApiError(data.get("error") or f"Failed to {action}")
        return data

    def list_comments(self, scrim_id: str) -> list[Comment]:
        data = self._request("GET", f"{self.comments_url}/scrim/{scrim_id}", "load comments")
        try:
            return [Comment.model_validate(item) for item in data.get("comments", [])]
        except ValidationError as e:
            raise CommentApiError("Failed to load comments") from e

    def create_comment(self, scrim_id: str, timestamp: int, content: str) -> Comment:
        data = self._request(
            "POST",
            self.comments_url,
            "add comment",
            json={"scrimId": scrim_id, "timestamp": timestamp, "content": content},
        )
        return self._parse_comment(data, "add comment")

    def update_comment(
        self,
        comment_id: int,
        content: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> Comment:
        body = {}
        if content is not None:
            body["content"] = content
        if timestamp is not None:
            body["timestamp"] = timestamp
        data = self._request("PUT", f"{self.comments_url}/{comment_id}", "update comment", json=body)
        return self._parse_comment(data, "update comment")

    def delete_comment(self, comment_id: int) -> None:
        self._request("DELETE", f"{self.comments_url}/{comment_id}", "delete comment")

    def list_mention_users(self) -> list[MentionUser]:
        """Roster members that can be mentioned; entries without a name are dropped."""
        data = self._request("GET", self.mappings_url, "load users")
        mappings = data.get("mappings")
        if not isinstance(mappings, list):
            return []
        users = []
        for mapping in mappings:
            user = MentionUser.from_mapping(mapping)
            if user is not None:
                users.append(user)
        return users

    @staticmethod
    def _parse_comment(data: dict, action: str) -> Comment:
        try:
            return Comment.model_validate(data.get("comment"))
        except ValidationError as e:
            raise CommentApiError(f"Failed to {action}") from e


class CommentStore:
    """
    The comment collection for one scrim.

    Sole writer of ``comments``. Also owns the single editing slot: at most
    one comment is being edited, and starting another edit drops the
    previous buffer.

    Only the blocking client call of each operation runs in a worker thread.
    Results and failures are applied on the event loop that awaits them.
    """

    def __init__(
        self,
        client: CommentApiClient,
        scrim_id: str,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.scrim_id = scrim_id
        self.notify = notify or (lambda message: logger.warning("%s", message))
        self.comments: list[Comment] = []
        self.loading = False
        self.error: Optional[str] = None
        self.editing_id: Optional[int] = None
        self.edit_buffer = ""
        self.pending_deletes: set[int] = set()
        self._details: dict[int, Comment] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def fetch(self) -> bool:
        """Replace the list with the server's current comments."""
        self.loading = True
        try:
            comments = await asyncio.to_thread(self.client.list_comments, self.scrim_id)
        except CommentApiError as e:
            return self.fail(e)
        finally:
            self.loading = False
        return self.apply_list(comments)

    def apply_list(self, comments: list[Comment]) -> bool:
        """Install a freshly fetched list; ignored once closed."""
        if self._closed:
            return False

        self.error = None
        self.comments = comments
        ids = {comment.id for comment in comments}
        self._details = {comment.id: comment for comment in comments}
        self.pending_deletes &= ids
        if self.editing_id is not None and self.editing_id not in ids:
            self.cancel_edit()
        logger.debug("Loaded %d comments for scrim %s", len(comments), self.scrim_id)
        return True

    def get(self, comment_id: int) -> Optional[Comment]:
        return self._details.get(comment_id)

    async def create(self, timestamp: int, content: str) -> Optional[Comment]:
        """Post a comment at ``timestamp``; blank content is not submitted."""
        if timestamp < 0:
            raise ValueError(f"Timestamp must be non-negative, got {timestamp}")
        content = content.strip()
        if not content:
            return None

        try:
            comment = await asyncio.to_thread(
                self.client.create_comment, self.scrim_id, timestamp, content
            )
        except CommentApiError as e:
            self.fail(e)
            return None
        if self._closed:
            return None

        logger.info("Added comment %s at %ss", comment.id, comment.timestamp)
        self._details[comment.id] = comment
        await self.fetch()
        return comment

    async def update(
        self,
        comment_id: int,
        content: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> bool:
        """Change a comment's content and/or timestamp."""
        if content is not None:
            content = content.strip()
            if not content:
                return False
        if timestamp is not None and timestamp < 0:
            raise ValueError(f"Timestamp must be non-negative, got {timestamp}")
        if content is None and timestamp is None:
            return False

        try:
            comment = await asyncio.to_thread(
                self.client.update_comment, comment_id, content=content, timestamp=timestamp
            )
        except CommentApiError as e:
            return self.fail(e)
        if self._closed:
            return False

        logger.info("Updated comment %s", comment_id)
        self._details[comment.id] = comment
        await self.fetch()
        return True

    async def remove(self, comment_id: int) -> bool:
        """
        Delete a comment.

        The id stays in ``pending_deletes`` until a fetch no longer lists it,
        so editing is blocked while the request runs and after it succeeds.
        """
        self.pending_deletes.add(comment_id)
        if self.editing_id == comment_id:
            self.cancel_edit()

        try:
            await asyncio.to_thread(self.client.delete_comment, comment_id)
        except CommentApiError as e:
            self.pending_deletes.discard(comment_id)
            return self.fail(e)
        if self._closed:
            return False

        logger.info("Deleted comment %s", comment_id)
        self._details.pop(comment_id, None)
        await self.fetch()
        return True

    # =========================================================================
    # Editing slot
    # =========================================================================

    def begin_edit(self, comment_id: int) -> bool:
        """Start editing a comment, silently discarding any other edit."""
        if comment_id in self.pending_deletes:
            return False
        comment = self.get(comment_id)
        if comment is None:
            return False
        if self.editing_id is not None and self.editing_id != comment_id:
            logger.debug("Discarding unsaved edit of comment %s", self.editing_id)
        self.editing_id = comment_id
        self.edit_buffer = comment.content
        return True

    def cancel_edit(self) -> None:
        self.editing_id = None
        self.edit_buffer = ""

    async def save_edit(self) -> bool:
        """Save the edit buffer; the slot stays open if the save fails."""
        if self.editing_id is None:
            return False
        editing_id = self.editing_id
        if not await self.update(editing_id, content=self.edit_buffer):
            return False
        if self.editing_id == editing_id:
            self.cancel_edit()
        return True

    def is_editable(self, comment_id: int) -> bool:
        return comment_id not in self.pending_deletes

    def close(self) -> None:
        """Stop applying results; requests still in flight are ignored."""
        self._closed = True
        self.cancel_edit()

    def fail(self, error: CommentApiError) -> bool:
        """Record a failed request and tell the user; ignored once closed."""
        if self._closed:
            return False
        self.error = str(error)
        logger.debug("Comment API failure: %s", error)
        self.notify(self.error)
        return False
