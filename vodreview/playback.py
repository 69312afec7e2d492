"""Playback position tracking for an embedded video player."""

import math
from enum import IntEnum
from typing import Callable, Optional, Protocol

from .config import SAMPLE_INTERVAL_SECONDS
from .logging import get_logger
from .scheduling import Scheduler, TimerSlot

logger = get_logger(__name__)


class PlayerState(IntEnum):
    """Player states reported by the embedded widget's state-change event."""
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class PlayerWidget(Protocol):
    """The controllable handle yielded by the widget's ready event."""

    def get_current_time(self) -> float: ...

    def seek_to(self, seconds: float) -> None: ...


class PlaybackTracker:
    """
    Republishes the player's position once per interval.

    Sampling starts when the widget reports ready and runs until ``dispose``.
    Positions are floored to whole seconds. Seeking only flows outwards:
    ``seek_to`` commands the widget and tells seek listeners, and the new
    position shows up on the next sample.
    """

    def __init__(self, scheduler: Scheduler, interval: float = SAMPLE_INTERVAL_SECONDS):
        self.interval = interval
        self.current_time = 0
        self.is_paused = False
        self._widget: Optional[PlayerWidget] = None
        self._sampler = TimerSlot(scheduler, "playback-sampler")
        self._time_listeners: list[Callable[[int], None]] = []
        self._pause_listeners: list[Callable[[bool], None]] = []
        self._seek_listeners: list[Callable[[int], None]] = []

    @property
    def ready(self) -> bool:
        return self._widget is not None

    @property
    def sampling(self) -> bool:
        return self._sampler.armed

    def on_time(self, callback: Callable[[int], None]) -> None:
        self._time_listeners.append(callback)

    def on_pause_change(self, callback: Callable[[bool], None]) -> None:
        self._pause_listeners.append(callback)

    def on_seek(self, callback: Callable[[int], None]) -> None:
        self._seek_listeners.append(callback)

    def attach(self, widget: PlayerWidget) -> None:
        """Handle the widget's ready event and start sampling."""
        self._widget = widget
        if self._sampler.arm_repeating(self.interval, self.sample):
            logger.debug("Sampling playback every %.1fs", self.interval)

    def sample(self) -> Optional[int]:
        """Read the widget position and publish it; skip the tick if unavailable."""
        widget = self._widget
        if widget is None:
            logger.debug("Player not ready, skipping sample")
            return None
        try:
            position = widget.get_current_time()
        except Exception as e:
            logger.debug("Player read failed, skipping sample: %s", e)
            return None
        if position is None or not math.isfinite(position):
            logger.debug("Player reported position %r, skipping sample", position)
            return None

        self.current_time = max(0, int(math.floor(position)))
        for callback in list(self._time_listeners):
            callback(self.current_time)
        return self.current_time

    def state_changed(self, state: int) -> None:
        """Handle the widget's state-change event."""
        paused = state == PlayerState.PAUSED
        if paused == self.is_paused:
            return
        self.is_paused = paused
        logger.debug("Playback %s", "paused" if paused else "resumed")
        for callback in list(self._pause_listeners):
            callback(paused)

    def seek_to(self, seconds: int) -> bool:
        """Jump the player to ``seconds``. Returns False if no player is attached."""
        if self._widget is None:
            return False
        self._widget.seek_to(seconds)
        for callback in list(self._seek_listeners):
            callback(seconds)
        return True

    def dispose(self) -> None:
        """Stop sampling and drop the widget and listeners."""
        self._sampler.dispose()
        self._widget = None
        self._time_listeners.clear()
        self._pause_listeners.clear()
        self._seek_listeners.clear()
        logger.debug("Playback tracker disposed")


class SimulatedPlayer:
    """
    A player widget whose position follows a scheduler clock.

    Used by the ``preview`` command to replay highlights without a real
    video, and by tests.
    """

    def __init__(self, scheduler: Scheduler, position: float = 0.0, duration: Optional[float] = None):
        self._scheduler = scheduler
        self._position = position
        self._anchor: Optional[float] = None
        self.duration = duration
        self.state = PlayerState.CUED
        self.state_listeners: list[Callable[[int], None]] = []

    def get_current_time(self) -> float:
        position = self._position
        if self._anchor is not None:
            position += self._scheduler.time() - self._anchor
        if self.duration is not None:
            position = min(position, self.duration)
        return position

    def seek_to(self, seconds: float) -> None:
        self._position = float(seconds)
        if self._anchor is not None:
            self._anchor = self._scheduler.time()

    def play(self) -> None:
        if self._anchor is None:
            self._anchor = self._scheduler.time()
        self._set_state(PlayerState.PLAYING)

    def pause(self) -> None:
        self._position = self.get_current_time()
        self._anchor = None
        self._set_state(PlayerState.PAUSED)

    def _set_state(self, state: PlayerState) -> None:
        self.state = state
        for callback in list(self.state_listeners):
            callback(state)
