"""
Faceted comment filtering.

Three facets narrow the comment list: author (single choice), tags and
mentioned users (multiple choice). Choices inside a facet are OR-ed, facets
are AND-ed, and an empty facet doesn't constrain anything. The special
mentioned value ``ALL_MENTIONS`` keeps every comment that mentions anyone.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .models import Comment

ALL_MENTIONS = "__all__"


@dataclass
class FilterSelection:
    """The viewer's current filter choices (never persisted)."""
    author: Optional[str] = None
    tags: set[str] = field(default_factory=set)
    mentioned: set[str] = field(default_factory=set)

    @property
    def is_active(self) -> bool:
        return self.author is not None or bool(self.tags) or bool(self.mentioned)

    def toggle_tag(self, tag: str) -> None:
        if tag in self.tags:
            self.tags.discard(tag)
        else:
            self.tags.add(tag)

    def toggle_mentioned(self, name: str) -> None:
        """Toggle a mentioned user; ``ALL_MENTIONS`` and names exclude each other."""
        if name in self.mentioned:
            self.mentioned.discard(name)
        elif name == ALL_MENTIONS:
            self.mentioned = {ALL_MENTIONS}
        else:
            self.mentioned.discard(ALL_MENTIONS)
            self.mentioned.add(name)

    def clear(self) -> None:
        self.author = None
        self.tags.clear()
        self.mentioned.clear()


@dataclass(frozen=True)
class FacetOptions:
    """Values offered by each facet, taken from the unfiltered list."""
    users: list[str]
    tags: list[str]
    mentioned: list[str]


def facet_options(comments: Iterable[Comment]) -> FacetOptions:
    """Collect the sorted authors, tags and mentioned users of all comments."""
    users: set[str] = set()
    tags: set[str] = set()
    mentioned: set[str] = set()
    for comment in comments:
        users.add(comment.user_name)
        tags |= comment.tags
        mentioned |= comment.mentions
    return FacetOptions(
        users=sorted(users),
        tags=sorted(tags),
        mentioned=sorted(mentioned),
    )


def matches_selection(comment: Comment, selection: FilterSelection) -> bool:
    """Check one comment against every facet of the selection."""
    if selection.author is not None and comment.user_name != selection.author:
        return False

    if selection.mentioned:
        mentions = comment.mentions
        if ALL_MENTIONS in selection.mentioned:
            if not mentions:
                return False
        elif not mentions & selection.mentioned:
            return False

    if selection.tags and not comment.tags & selection.tags:
        return False

    return True


def apply_filters(comments: Sequence[Comment], selection: FilterSelection) -> list[Comment]:
    """Comments passing the selection, in their original order."""
    return [comment for comment in comments if matches_selection(comment, selection)]
