"""
Viewport animation.

Interpolates the pan offset towards a target with an ease-out cubic curve.
Frames are scheduled on the running asyncio loop one at a time (the loop's
equivalent of requestAnimationFrame); cancelling drops the pending frame.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from flowcanvas.geometry import CARD_HEIGHT, CARD_WIDTH, EditorState, Point

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1 / 60
DEFAULT_DURATION = 0.35


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


@dataclass
class Animation:
    start_x: float
    start_y: float
    delta_x: float
    delta_y: float
    start_time: float
    duration: float


class ViewportAnimator:
    """Animates EditorState.viewport pan offset; cancellable at any frame."""

    def __init__(self, state: EditorState,
                 clock: Callable[[], float] = time.monotonic,
                 duration: float = DEFAULT_DURATION):
        self.state = state
        self._clock = clock
        self._duration = duration
        self._animation: Optional[Animation] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._frame_listeners: List[Callable[[], None]] = []

    @property
    def is_running(self) -> bool:
        return self._animation is not None

    def on_frame(self, callback: Callable[[], None]) -> None:
        self._frame_listeners.append(callback)

    def animate_to(self, target_x: float, target_y: float, duration: Optional[float] = None) -> None:
        self.cancel()
        vp = self.state.viewport
        self._animation = Animation(
            start_x=vp.x,
            start_y=vp.y,
            delta_x=target_x - vp.x,
            delta_y=target_y - vp.y,
            start_time=self._clock(),
            duration=self._duration if duration is None else duration,
        )
        self._schedule()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._animation = None

    def step(self, now: Optional[float] = None) -> bool:
        """Advance one frame. Returns True while the animation still has frames left."""
        anim = self._animation
        if anim is None:
            return False
        now = self._clock() if now is None else now
        if anim.duration <= 0:
            t = 1.0
        else:
            t = min(1.0, max(0.0, (now - anim.start_time) / anim.duration))
        eased = ease_out_cubic(t)
        vp = self.state.viewport
        vp.x = anim.start_x + anim.delta_x * eased
        vp.y = anim.start_y + anim.delta_y * eased
        if t >= 1:
            self._animation = None
        self._notify()
        return self._animation is not None

    def focus_target(self, node_x: float, node_y: float) -> Point:
        """Pan offset that puts the card's center at the center of the visible area."""
        vp = self.state.viewport
        surface = self.state.surface
        center_x = -vp.x / vp.scale + surface.width / vp.scale / 2
        center_y = -vp.y / vp.scale + surface.height / vp.scale / 2
        target_x = node_x + CARD_WIDTH / 2
        target_y = node_y + CARD_HEIGHT / 2
        return Point(
            vp.x + (center_x - target_x) * vp.scale,
            vp.y + (center_y - target_y) * vp.scale,
        )

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: frames are driven by explicit step() calls.
            return
        self._handle = loop.call_later(FRAME_INTERVAL, self._on_frame)

    def _on_frame(self) -> None:
        self._handle = None
        if self.step():
            self._schedule()

    def _notify(self) -> None:
        for callback in self._frame_listeners:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in viewport frame listener: {e}")
