"""
In-memory session statistics and end-of-match summaries.

Nothing here touches storage; a host that wants lifetime stats persists
``SessionStats.as_dict()`` itself.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Dict, List

from physics import LEFT, RIGHT
from state import MatchState


def format_duration(seconds: float) -> str:
    s = max(0, int(seconds))
    return f"{s // 60:02d}:{s % 60:02d}"


@dataclass(frozen=True)
class MatchSummary:
    winner: str
    mode: str
    difficulty: str
    left_score: int
    right_score: int
    max_rally: int
    duration_seconds: int
    powerups: Dict[str, int]

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_seconds)


def summarize(state: MatchState) -> MatchSummary:
    end = state.match_end_ms or state.match_start_ms
    duration = max(0, int((end - state.match_start_ms) // 1000)) if state.match_start_ms else 0
    return MatchSummary(
        winner=state.winner,
        mode=state.mode,
        difficulty=state.difficulty,
        left_score=state.left.score,
        right_score=state.right.score,
        max_rally=state.max_rally,
        duration_seconds=duration,
        powerups={LEFT: state.powerups_collected[LEFT], RIGHT: state.powerups_collected[RIGHT]},
    )


@dataclass
class SessionStats:
    best_rally: int = 0
    best_combo: int = 0
    matches_played: int = 0
    wins: Counter = field(default_factory=Counter)
    total_powerups: int = 0
    history: List[MatchSummary] = field(default_factory=list)

    def observe(self, rally: int, combo: int) -> None:
        if rally > self.best_rally:
            self.best_rally = rally
        if combo > self.best_combo:
            self.best_combo = combo

    def record_match(self, summary: MatchSummary) -> None:
        self.matches_played += 1
        self.total_powerups += sum(summary.powerups.values())
        if summary.winner:
            self.wins[summary.winner] += 1
        self.history.append(summary)

    def reset(self) -> None:
        self.best_rally = self.best_combo = 0
        self.matches_played = self.total_powerups = 0
        self.wins = Counter()
        self.history = []

    def as_dict(self) -> dict:
        return {
            "best_rally": self.best_rally,
            "best_combo": self.best_combo,
            "matches_played": self.matches_played,
            "wins": dict(self.wins),
            "total_powerups": self.total_powerups,
            "history": [asdict(m) for m in self.history],
        }
