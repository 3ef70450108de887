"""
Paddle control signals.

Keyboard, pointer and touch sources all reduce to one ``PaddleControl``
that yields the paddle's intended top edge for the tick. The controller
clamps the result and derives the true displacement from the paddle's
previous position, so power-hit detection is the same for every source.
"""

from dataclasses import dataclass

from config import COURT_HEIGHT
from physics import Paddle

# Pointer control closes this fraction of the gap each tick
FOLLOW_EASING = 0.15

KINDS = ("idle", "move", "follow", "place")


@dataclass(frozen=True)
class PaddleControl:
    kind: str = "idle"
    value: float = 0.0

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"unknown control kind '{self.kind}'")

    @classmethod
    def idle(cls) -> "PaddleControl":
        return cls()

    @classmethod
    def move(cls, direction: float) -> "PaddleControl":
        """Keyboard-style: -1 up, +1 down, scaled by the paddle's speed."""
        return cls("move", max(-1.0, min(1.0, float(direction))))

    @classmethod
    def follow(cls, y: float) -> "PaddleControl":
        """Pointer-style: ease the paddle centre toward ``y``."""
        return cls("follow", float(y))

    @classmethod
    def place(cls, y: float) -> "PaddleControl":
        """Touch-style: put the paddle centre at ``y`` directly."""
        return cls("place", float(y))

    def target_y(self, paddle: Paddle) -> float:
        """Intended top edge of ``paddle`` after this tick (unclamped)."""
        if self.kind == "move":
            return paddle.y + self.value * paddle.speed
        if self.kind == "follow":
            desired = self.value - paddle.height / 2
            return paddle.y + (desired - paddle.y) * FOLLOW_EASING
        if self.kind == "place":
            return self.value - paddle.height / 2
        return paddle.y


def apply_control(paddle: Paddle, control: PaddleControl,
                  court_height: float = COURT_HEIGHT) -> None:
    paddle.y = control.target_y(paddle)
    paddle.clamp_to_court(court_height)
