"""
vodreview - Timestamped comments for scrim VODs

Keeps a team's discussion in step with match footage:
- Track the embedded player's position once per second
- Highlight and scroll to the comment being played
- Parse <@Name> mentions and #tags out of comment text
- Filter comments by author, tag and mentioned user
- Read and write comments through the bot API
"""

__version__ = "0.1.0"

from .parser import extract_mentions, extract_tags, render_segments, tag_color
from .models import Comment, Identity, MentionUser
from .filters import ALL_MENTIONS, FilterSelection, apply_filters, facet_options
from .highlight import HighlightController, ViewState, find_match
from .playback import PlaybackTracker, PlayerState, SimulatedPlayer
from .composer import MentionComposer
from .store import CommentApiClient, CommentApiError, CommentStore
from .session import ReviewSession

__all__ = [
    "extract_mentions",
    "extract_tags",
    "render_segments",
    "tag_color",
    "Comment",
    "Identity",
    "MentionUser",
    "ALL_MENTIONS",
    "FilterSelection",
    "apply_filters",
    "facet_options",
    "HighlightController",
    "ViewState",
    "find_match",
    "PlaybackTracker",
    "PlayerState",
    "SimulatedPlayer",
    "MentionComposer",
    "CommentApiClient",
    "CommentApiError",
    "CommentStore",
    "ReviewSession",
]
