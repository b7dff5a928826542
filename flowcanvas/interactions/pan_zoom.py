"""Canvas pan (drag on empty space) and zoom (wheel or toolbar steps)."""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from flowcanvas.animator import ViewportAnimator
from flowcanvas.geometry import CoordinateEngine, Point
from flowcanvas.interactions.base import PanState, PointerEvent


@dataclass
class PanSession:
    origin: Point
    start_pan: Point
    state: PanState = PanState.PANNING


class PanZoomMachine:
    """
    Pan tracks the pointer's screen delta 1:1, independent of scale.
    Starting a pan or a wheel zoom cancels any running viewport animation.
    """

    def __init__(self, engine: CoordinateEngine, animator: ViewportAnimator,
                 on_deselect: Callable[[], None]):
        self.engine = engine
        self.animator = animator
        self.on_deselect = on_deselect
        self._sessions: Dict[int, PanSession] = {}

    def session(self, pointer_id: int) -> Optional[PanSession]:
        return self._sessions.get(pointer_id)

    @property
    def is_active(self) -> bool:
        return bool(self._sessions)

    def begin(self, event: PointerEvent) -> bool:
        if event.pointer_id in self._sessions:
            return False
        self.on_deselect()
        self.animator.cancel()
        vp = self.engine.viewport
        self._sessions[event.pointer_id] = PanSession(origin=event.point, start_pan=Point(vp.x, vp.y))
        return True

    def move(self, event: PointerEvent) -> Optional[PanState]:
        session = self._sessions.get(event.pointer_id)
        if session is None:
            return None
        self.engine.pan_to(
            session.start_pan.x + (event.x - session.origin.x),
            session.start_pan.y + (event.y - session.origin.y),
        )
        return session.state

    def release(self, event: PointerEvent) -> Optional[PanState]:
        if self._sessions.pop(event.pointer_id, None) is None:
            return None
        return PanState.IDLE

    def cancel(self, pointer_id: int) -> Optional[PanState]:
        if self._sessions.pop(pointer_id, None) is None:
            return None
        return PanState.IDLE

    def wheel(self, delta_y: float, screen_x: float, screen_y: float) -> float:
        """Continuous zoom anchored at the pointer. Returns the applied scale."""
        self.animator.cancel()
        surface = self.engine.state.surface
        anchor = Point(screen_x - surface.left, screen_y - surface.top)
        return self.engine.wheel_zoom(delta_y, anchor)

    def zoom_step(self, direction: str) -> float:
        """Step to the next discrete zoom level ('in' or 'out') around the surface center."""
        self.animator.cancel()
        return self.engine.next_zoom(direction)
