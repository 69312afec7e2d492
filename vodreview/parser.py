"""
Comment text parsing.

Comment content is the single source of truth for annotations:
- ``<@Name>`` mentions a roster member by display name
- ``#word`` tags a topic (``\\w`` is ASCII-only, so ``#site-b`` tags ``site``)

Everything here is pure and stateless so the composer and the filter engine
can share it.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

MENTION_PATTERN = re.compile(r"<@([^>]+)>")
TAG_PATTERN = re.compile(r"#(\w+)", re.ASCII)
TOKEN_PATTERN = re.compile(r"(<@[^>]+>|#\w+)", re.ASCII)

TAG_COLORS = [
    "emerald",
    "amber",
    "rose",
    "violet",
    "cyan",
    "orange",
]


class SegmentKind(str, Enum):
    """Kinds of inline segments in rendered comment text."""
    PLAIN = "plain"
    MENTION = "mention"
    TAG = "tag"


@dataclass(frozen=True)
class Segment:
    """
    One inline piece of a comment.

    ``text`` holds the mention name or tag word without its markup, or the
    plain text verbatim.
    """
    kind: SegmentKind
    text: str

    @property
    def raw(self) -> str:
        """Source text this segment was parsed from."""
        if self.kind == SegmentKind.MENTION:
            return f"<@{self.text}>"
        if self.kind == SegmentKind.TAG:
            return f"#{self.text}"
        return self.text

    @property
    def color(self) -> Optional[str]:
        """Palette color for tag segments."""
        if self.kind == SegmentKind.TAG:
            return tag_color(self.text)
        return None


def extract_tags(content: str) -> set[str]:
    """All tag words in the content, deduplicated."""
    return set(TAG_PATTERN.findall(content))


def extract_mentions(content: str) -> set[str]:
    """All mentioned names in the content, without the ``<@``/``>`` markup."""
    return set(MENTION_PATTERN.findall(content))


def render_segments(content: str) -> list[Segment]:
    """
    Split content into plain, mention and tag segments.

    Order and surrounding whitespace are preserved, so joining the ``raw``
    text of the segments gives back the content unchanged.
    """
    segments = []
    for part in TOKEN_PATTERN.split(content):
        if not part:
            continue
        mention = MENTION_PATTERN.fullmatch(part)
        if mention:
            segments.append(Segment(SegmentKind.MENTION, mention.group(1)))
            continue
        tag = TAG_PATTERN.fullmatch(part)
        if tag:
            segments.append(Segment(SegmentKind.TAG, tag.group(1)))
            continue
        segments.append(Segment(SegmentKind.PLAIN, part))
    return segments


def join_segments(segments: Iterable[Segment]) -> str:
    """Rebuild comment content from segments."""
    return "".join(segment.raw for segment in segments)


def tag_color(tag: str) -> str:
    """
    Stable palette color for a tag.

    Uses a 32-bit signed rolling hash (``h = h * 31 + code``) so the same tag
    gets the same color across renders, sessions and clients.
    """
    h = 0
    for ch in tag:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return TAG_COLORS[abs(h) % len(TAG_COLORS)]


# =============================================================================
# Timestamps and video references
# =============================================================================

def format_timestamp(seconds: int) -> str:
    """Format whole seconds as ``M:SS`` or ``H:MM:SS``."""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_timestamp(text: str) -> int:
    """
    Parse ``SS``, ``M:SS`` or ``H:MM:SS`` into whole seconds.

    Raises:
        ValueError: If the text is not a non-negative timestamp
    """
    parts = text.strip().split(":")
    if not 1 <= len(parts) <= 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid timestamp: {text!r}")

    values = [int(p) for p in parts]
    if len(values) > 1 and any(v >= 60 for v in values[1:]):
        raise ValueError(f"Invalid timestamp: {text!r}")

    total = 0
    for value in values:
        total = total * 60 + value
    return total


_VIDEO_URL_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"
)
_VIDEO_ID_PATTERN = re.compile(r"^([a-zA-Z0-9_-]{11})$")


def get_video_id(url: str) -> Optional[str]:
    """Extract the video id from a watch, short or embed URL, or a bare id."""
    if not url:
        return None
    for pattern in (_VIDEO_URL_PATTERN, _VIDEO_ID_PATTERN):
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None
