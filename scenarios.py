"""
Match scenario presets.
Each preset starts a match on the given controller, skips the serve
countdown and arranges ball/paddles/power-ups into a known situation.
Used by the host's debug keys (1-5) and by the tests.
"""

import numpy as np

from config import COURT_WIDTH, COURT_HEIGHT, BALL_INITIAL_SPEED, difficulty_settings
from physics import PowerUp, PowerUpType
from controller import MatchController


def _skip_serve(ctrl: MatchController, direction: int = 1, vy: float = 0.0) -> None:
    """Drop the countdown and put the ball in play from the centre."""
    st = ctrl.state
    speed = BALL_INITIAL_SPEED * difficulty_settings(st.difficulty)["ball_speed_mul"]
    st.serve_countdown = 0.0
    st.serve_countdown_last_int = 0
    st.ball.center(speed=speed)
    st.ball.velocity = np.array([speed * direction, vy])


class MatchScenario:
    """Each preset returns {"controller", "label"}."""

    @staticmethod
    def straight_rally(ctrl: MatchController, mode: str = "single") -> dict:
        """Ball launched flat toward the right paddle."""
        ctrl.start("medium", 7, mode)
        _skip_serve(ctrl, direction=1)
        return {"controller": ctrl, "label": "Straight rally"}

    @staticmethod
    def power_hit(ctrl: MatchController) -> dict:
        """Ball about to reach the left paddle; move the paddle to power-hit."""
        ctrl.start("medium", 7, "multi")
        _skip_serve(ctrl, direction=-1)
        st = ctrl.state
        paddle = st.left
        st.ball.position = np.array([paddle.x + paddle.width + st.ball.radius + 4.0,
                                     paddle.center_y])
        return {"controller": ctrl, "label": "Power hit"}

    @staticmethod
    def powerup_lane(ctrl: MatchController) -> dict:
        """Three power-ups on the ball's flat path toward the right."""
        ctrl.start("medium", 7, "single")
        _skip_serve(ctrl, direction=1)
        st = ctrl.state
        st.last_hit_by = "left"
        y = COURT_HEIGHT / 2
        st.powerups = [
            PowerUp(PowerUpType.SLOW, position=[COURT_WIDTH / 2 + 40, y]),
            PowerUp(PowerUpType.SHRINK, position=[COURT_WIDTH / 2 + 120, y]),
            PowerUp(PowerUpType.ENLARGE, position=[COURT_WIDTH / 2 + 200, y]),
        ]
        return {"controller": ctrl, "label": "Power-up lane"}

    @staticmethod
    def match_point(ctrl: MatchController, win_score: int = 7) -> dict:
        """Both sides one point from winning."""
        ctrl.start("medium", win_score, "single")
        _skip_serve(ctrl, direction=-1)
        st = ctrl.state
        st.left.score = win_score - 1
        st.right.score = win_score - 1
        return {"controller": ctrl, "label": "Match point"}

    @staticmethod
    def steep_bounce(ctrl: MatchController) -> dict:
        """Steep ball toward the AI so the prediction folds off several walls."""
        ctrl.start("hard", 7, "single")
        _skip_serve(ctrl, direction=1, vy=9.0)
        return {"controller": ctrl, "label": "Steep bounce"}


SCENARIOS = {
    "1": MatchScenario.straight_rally,
    "2": MatchScenario.power_hit,
    "3": MatchScenario.powerup_lane,
    "4": MatchScenario.match_point,
    "5": MatchScenario.steep_bounce,
}
