"""Comment input with @mention suggestions."""

import re
from typing import Callable, Iterable, Optional

from .config import SUGGESTION_LIMIT
from .models import MentionUser

# An '@' not preceded by '<', followed by the partial name up to the caret
_MENTION_QUERY = re.compile(r"(^|[^<])@(\S*)\Z")


class MentionComposer:
    """
    Growable multi-line comment input.

    Typing ``@par`` opens a suggestion popup filtered by ``par``; picking a
    user replaces the partial with ``<@Full Name> ``. While the caret sits
    inside an unterminated ``<@`` token no suggestions are offered.

    Enter submits unless the popup is open, in which case the popup takes
    the key and picks the active suggestion. Escape closes the popup, or
    cancels editing when it is already closed.
    """

    def __init__(
        self,
        users: Optional[Iterable[MentionUser]] = None,
        on_submit: Optional[Callable[[str], None]] = None,
        on_cancel: Optional[Callable[[], None]] = None,
        limit: int = SUGGESTION_LIMIT,
        text: str = "",
    ):
        self.users = list(users or [])
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.limit = limit
        self.text = text
        self.caret = len(text)
        self.popup_open = False
        self.search = ""
        self.active_index = 0
        self._mention_start = -1
        self._saved_caret = -1

    @property
    def rows(self) -> int:
        """Number of lines the input needs to show all of its text."""
        return self.text.count("\n") + 1

    @property
    def can_submit(self) -> bool:
        return bool(self.text.strip())

    def change(self, text: str, caret: Optional[int] = None) -> None:
        """Handle a text change with the caret at ``caret`` (default: end)."""
        self.text = text
        self.caret = len(text) if caret is None else max(0, min(caret, len(text)))
        before = text[:self.caret]

        inside_token = before.rfind("<@") > before.rfind(">")
        if not inside_token:
            match = _MENTION_QUERY.search(before)
            if match:
                self._mention_start = match.start() + len(match.group(1))
                self._saved_caret = self.caret
                self._open_popup(match.group(2))
                return

        self.close_popup()

    def reset(self, text: str = "") -> None:
        """Replace the text without triggering suggestions."""
        self.text = text
        self.caret = len(text)
        self.close_popup()

    def clear(self) -> None:
        self.reset("")

    def set_search(self, query: str) -> None:
        """Refine the popup's search independently of the text."""
        self.search = query
        self.active_index = 0

    def suggestions(self) -> list[MentionUser]:
        """Roster members whose name contains the search, case-insensitively."""
        query = self.search.lower()
        matches = [user for user in self.users if query in user.name.lower()]
        return matches[:self.limit]

    def select(self, name: str) -> Optional[int]:
        """
        Replace the ``@partial`` span with a mention token.

        Returns:
            The new caret position, just after the inserted space, or None
            if there is no pending mention
        """
        if self._mention_start < 0:
            return None

        caret = self._saved_caret if self._saved_caret >= 0 else len(self.text)
        before = self.text[:self._mention_start]
        after = self.text[caret:]
        self.text = f"{before}<@{name}> {after}"
        self.caret = len(before) + len(name) + 4
        self.close_popup()
        return self.caret

    def key(self, key: str, shift: bool = False) -> bool:
        """
        Handle a key press.

        Returns:
            True if the composer consumed the key
        """
        if key == "Enter":
            if shift:
                return False
            if self.popup_open:
                options = self.suggestions()
                if options:
                    active = options[min(self.active_index, len(options) - 1)]
                    self.select(active.name)
                return True
            self.submit()
            return True

        if key == "Escape":
            if self.popup_open:
                self.close_popup()
            elif self.on_cancel is not None:
                self.on_cancel()
            return True

        if key in ("ArrowDown", "ArrowUp") and self.popup_open:
            options = self.suggestions()
            if options:
                step = 1 if key == "ArrowDown" else -1
                self.active_index = (self.active_index + step) % len(options)
            return True

        return False

    def submit(self) -> bool:
        """Hand the trimmed text to ``on_submit``; blank text is not submitted."""
        content = self.text.strip()
        if not content:
            return False
        if self.on_submit is not None:
            self.on_submit(content)
        return True

    def close_popup(self) -> None:
        self.popup_open = False
        self.search = ""
        self.active_index = 0
        self._mention_start = -1
        self._saved_caret = -1

    def _open_popup(self, query: str) -> None:
        self.popup_open = True
        self.set_search(query)
