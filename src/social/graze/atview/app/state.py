"""
View state store.

Holds the UI-facing state of a view (theme, notice banner, resolved PDS and
record validity) behind explicit writers and a subscription contract.

Every navigation starts a new view with ``begin_view``, which returns a token.
View-scoped writes carry that token, and writes made with the token of a view
that has since been replaced are dropped, so an in-flight resolution or fetch
that completes after the user moved on can never touch the current view.
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Theme = Literal["light", "dark"]


class ViewState(BaseModel, frozen=True):
    theme: Theme = "light"
    notice: str = ""
    pds: Optional[str] = None
    valid_record: Optional[bool] = None


@dataclass(frozen=True)
class ViewToken:
    generation: int


Subscriber = Callable[[ViewState, ViewState], None]
"""Called with ``(previous, current)`` after every effective change."""


class ViewStateStore:
    def __init__(self, initial: Optional[ViewState] = None) -> None:
        self._state = initial or ViewState()
        self._generation = 0
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> ViewState:
        return self._state

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def begin_view(self) -> ViewToken:
        """Start a new view, clearing view-scoped state. The theme is kept."""
        self._generation += 1
        self._write(notice="", pds=None, valid_record=None)
        return ViewToken(self._generation)

    def is_active(self, token: ViewToken) -> bool:
        return token.generation == self._generation

    def update(self, token: ViewToken, **changes: Any) -> bool:
        """Apply view-scoped changes if the token belongs to the active view.

        Returns:
            False when the write was dropped because the view is stale
        """
        if not self.is_active(token):
            logger.debug(
                "Dropping stale view update %s (generation %d, active %d)",
                sorted(changes),
                token.generation,
                self._generation,
            )
            return False
        self._write(**changes)
        return True

    def set_notice(self, token: ViewToken, notice: str) -> bool:
        return self.update(token, notice=notice)

    def set_pds(self, token: ViewToken, pds: Optional[str]) -> bool:
        return self.update(token, pds=pds)

    def set_valid_record(self, token: ViewToken, valid_record: Optional[bool]) -> bool:
        return self.update(token, valid_record=valid_record)

    def set_theme(self, theme: Theme) -> None:
        self._write(theme=theme)

    def toggle_theme(self) -> Theme:
        theme: Theme = "dark" if self._state.theme == "light" else "light"
        self.set_theme(theme)
        return theme

    def _write(self, **changes: Any) -> None:
        previous = self._state
        current = ViewState.model_validate({**previous.model_dump(), **changes})
        if current == previous:
            return
        self._state = current
        for subscriber in list(self._subscribers):
            subscriber(previous, current)

    def snapshot(self) -> Dict[str, Any]:
        return self._state.model_dump()
