"""
Transient cosmetic entities: particles, ball trail and screen shake.

The simulation emits these and decays them every tick but never reads them
back, so nothing here can influence scores or ball motion. Reduced motion
scales emission counts and intensities only.
"""

import random
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

PARTICLE_DAMPING = 0.96
PARTICLE_BASE_SPEED = 8.0
TRAIL_FADE = 0.88
TRAIL_CUTOFF = 0.02
SHAKE_DECAY = 0.85
SHAKE_CUTOFF = 0.5

# (max points, initial alpha)
TRAIL_FULL = (20, 0.7)
TRAIL_REDUCED = (8, 0.45)

REDUCED_COUNT_SCALE = 0.35
REDUCED_VELOCITY_SCALE = 0.7
REDUCED_SIZE_SCALE = 0.85
REDUCED_SHAKE_SCALE = 0.35


@dataclass
class Particle:
    position: np.ndarray
    velocity: np.ndarray
    color: str
    size: float
    max_life: float
    life: float = 1.0


@dataclass
class Trail:
    x: float
    y: float
    alpha: float


@dataclass
class ScreenShake:
    x: float = 0.0
    y: float = 0.0
    intensity: float = 0.0


class Cosmetics:
    """Owns every decorative buffer the renderer draws."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.particles: List[Particle] = []
        self.trails: List[Trail] = []
        self.shake = ScreenShake()
        self.reduced_motion = False

    def set_reduced_motion(self, enabled: bool) -> None:
        self.reduced_motion = enabled
        if enabled:
            self.clear()

    def clear(self) -> None:
        self.particles = []
        self.trails = []
        self.shake = ScreenShake()

    def clear_trails(self) -> None:
        self.trails = []

    # ──────────────────────────────────────────
    # Emission
    # ──────────────────────────────────────────
    def burst(self, x: float, y: float, color: str, count: int, spread: float = 1.0) -> int:
        """Spawn a particle burst; returns how many particles were emitted."""
        rm = self.reduced_motion
        final_count = max(1, int(count * REDUCED_COUNT_SCALE)) if rm else count
        vel_mul = REDUCED_VELOCITY_SCALE if rm else 1.0
        size_mul = REDUCED_SIZE_SCALE if rm else 1.0
        rng = self.rng
        for _ in range(final_count):
            self.particles.append(Particle(
                position=np.array([x, y], dtype=float),
                velocity=np.array([
                    (rng.random() - 0.5) * PARTICLE_BASE_SPEED * spread * vel_mul,
                    (rng.random() - 0.5) * PARTICLE_BASE_SPEED * spread * vel_mul,
                ]),
                color=color,
                size=(2 + rng.random() * 4) * size_mul,
                max_life=0.5 + rng.random() * 0.8,
            ))
        return final_count

    def add_trail(self, x: float, y: float) -> None:
        limit, alpha = TRAIL_REDUCED if self.reduced_motion else TRAIL_FULL
        self.trails.append(Trail(x=x, y=y, alpha=alpha))
        if len(self.trails) > limit:
            del self.trails[:len(self.trails) - limit]

    def add_shake(self, intensity: float) -> float:
        """Request a screen shake; returns the applied intensity."""
        if self.reduced_motion:
            intensity *= REDUCED_SHAKE_SCALE
        self.shake.intensity = intensity
        return intensity

    # ──────────────────────────────────────────
    # Per-tick decay
    # ──────────────────────────────────────────
    def decay(self, dt: float) -> None:
        alive = []
        for p in self.particles:
            p.position = p.position + p.velocity
            p.velocity = p.velocity * PARTICLE_DAMPING
            p.life -= dt / p.max_life
            if p.life > 0:
                alive.append(p)
        self.particles = alive

        for t in self.trails:
            t.alpha *= TRAIL_FADE
        self.trails = [t for t in self.trails if t.alpha > TRAIL_CUTOFF]

        shake = self.shake
        if shake.intensity > 0:
            shake.x = (self.rng.random() - 0.5) * shake.intensity
            shake.y = (self.rng.random() - 0.5) * shake.intensity
            shake.intensity *= SHAKE_DECAY
            if shake.intensity < SHAKE_CUTOFF:
                self.shake = ScreenShake()
