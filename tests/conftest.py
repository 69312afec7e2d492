"""Shared fixtures for vodreview tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from vodreview.models import Comment, MentionUser
from vodreview.scheduling import ManualScheduler


def make_comment(
    id: int,
    timestamp: int,
    content: str = "",
    user_name: str = "kai",
    scrim_id: str = "42",
) -> Comment:
    return Comment(
        id=id,
        scrim_id=scrim_id,
        timestamp=timestamp,
        user_name=user_name,
        content=content or f"comment {id}",
        created_at="2026-10-01T12:00:00.000Z",
        updated_at="2026-10-01T12:00:00.000Z",
    )


class FakePlayer:
    """Player widget with a position set directly by the test."""

    def __init__(self, position: float = 0.0):
        self.position = position
        self.seeks = []

    def get_current_time(self) -> float:
        return self.position

    def seek_to(self, seconds: float) -> None:
        self.seeks.append(seconds)
        self.position = seconds


class FakeViewport:
    """
    Comment list with fixed-height rows in the given id order.

    ``on_scroll`` is called synchronously from ``scroll_to``, like a browser
    firing a scroll event for a programmatic scroll.
    """

    def __init__(self, ids, row_height: float = 100.0, client_height: float = 300.0):
        self.ids = list(ids)
        self.row_height = row_height
        self.client_height = client_height
        self.scroll_top = 0.0
        self.scrolls = []
        self.on_scroll = None

    def item_geometry(self, comment_id: int) -> Optional[tuple]:
        if comment_id not in self.ids:
            return None
        return self.ids.index(comment_id) * self.row_height, self.row_height

    def scroll_to(self, top: float) -> None:
        self.scroll_top = top
        self.scrolls.append(top)
        if self.on_scroll is not None:
            self.on_scroll()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    dirpath = tempfile.mkdtemp()
    yield Path(dirpath)
    shutil.rmtree(dirpath)


@pytest.fixture
def scheduler():
    """Virtual clock starting at zero."""
    return ManualScheduler()


@pytest.fixture
def sample_comments():
    """A scrim's comments, ordered by timestamp like the API returns them."""
    return [
        make_comment(1, 10, "<@Jo> peek too wide #retake", user_name="kai"),
        make_comment(2, 30, "nice trade #eco", user_name="jo"),
        make_comment(3, 32, "gk #retake #retake rotate #site-b", user_name="kai"),
        make_comment(4, 60, "<@Kai> <@Mia> smokes late #exec", user_name="mia"),
        make_comment(5, 95, "save next round", user_name="jo"),
    ]


@pytest.fixture
def roster():
    return [
        MentionUser("Kai", "https://cdn.example.com/kai.png"),
        MentionUser("Jo"),
        MentionUser("Mia"),
        MentionUser("Kaiser"),
    ]


@pytest.fixture
def mock_client(sample_comments, roster):
    """Comment API client double serving ``sample_comments``."""
    client = MagicMock()
    client.list_comments.return_value = list(sample_comments)
    client.list_mention_users.return_value = list(roster)
    return client
