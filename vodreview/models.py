"""Data model shared by the store, filters and playback controller."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .parser import extract_mentions, extract_tags

ADMIN_ROLE = "admin"


class Comment(BaseModel):
    """
    A remark pinned to a playback second.

    Field names follow Python conventions; the wire format uses camelCase
    aliases. ``content`` is the only source of mentions and tags.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    scrim_id: str = Field(alias="scrimId")
    timestamp: int = Field(ge=0, description="Playback position in whole seconds")
    user_name: str = Field(alias="userName")
    content: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @property
    def tags(self) -> set[str]:
        return extract_tags(self.content)

    @property
    def mentions(self) -> set[str]:
        return extract_mentions(self.content)

    def to_dict(self) -> dict:
        """Convert to the camelCase wire shape."""
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class MentionUser:
    """A roster member offered by the mention composer."""
    name: str
    avatar_url: Optional[str] = None

    @property
    def initials(self) -> str:
        """Avatar fallback text."""
        return self.name[:2].upper()

    @classmethod
    def from_mapping(cls, data: dict) -> Optional["MentionUser"]:
        """Build from a roster mapping; None when it has no display name."""
        name = data.get("displayName") or ""
        if not name:
            return None
        return cls(name=name, avatar_url=data.get("avatarUrl"))


@dataclass(frozen=True)
class Identity:
    """The current operator, used to gate edit and delete affordances."""
    username: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def owns(self, comment: Comment) -> bool:
        return comment.user_name == self.username

    def can_edit(self, comment: Comment) -> bool:
        return self.owns(comment) or self.is_admin

    def can_delete(self, comment: Comment) -> bool:
        return self.owns(comment) or self.is_admin
