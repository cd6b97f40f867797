# renderers/match_view.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from domain.models import Match


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _when(dt: Optional[datetime]) -> str:
    if dt is None:
        return "TBD"
    return dt.strftime("%a %b %d %H:%M")


def _result(m: Match) -> str:
    if not m.is_complete:
        return m.status_label
    return f"{m.team_a_score}-{m.team_b_score} ({m.winner_name})"


class MatchView:
    """
    Monospace match lists: one week of the regular season, playoff games, history.
    Every line starts with the match id so it can be passed to /league report.
    """

    def __init__(self, *, name_width: int = 18) -> None:
        self._name_width = int(name_width)

    def _line(self, m: Match, *, show_when: bool = True) -> str:
        line = (
            f"#{_pad(str(m.match_id), 5)} {_pad(m.code, 8)} "
            f"{_pad(m.team_a_name, self._name_width)} vs {_pad(m.team_b_name, self._name_width)}  "
        )
        if show_when and not m.is_complete:
            line += f"{_when(m.scheduled_at)}"
            if m.location:
                line += f" @ {m.location}"
            line += "  "
        return line + _result(m)

    def render_week(
        self,
        matches: Sequence[Match],
        *,
        week: int,
        title: str = "Schedule",
        starts_on: Optional[date] = None,
    ) -> str:
        head = f"=== {title}: Week {week} ==="
        if starts_on is not None:
            head += f" (from {starts_on.isoformat()})"
        lines: list[str] = [head]

        if not matches:
            lines.append("(no matches)")

        curr_round: Optional[int] = None
        for m in matches:
            if m.round_no != curr_round:
                curr_round = m.round_no
                lines.append(f"Round {curr_round}:")
            lines.append("  " + self._line(m))

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

    def render_playoff_games(self, games: Sequence[Match], *, title: str = "Playoff games", max_lines: int = 40) -> str:
        lines: list[str] = [f"=== {title} ==="]
        if not games:
            lines.append("(playoffs not seeded)")
        lines.extend(self._line(g) for g in list(games)[:max_lines])
        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

    def render_history(self, matches: Sequence[Match], *, title: str = "Results", max_lines: int = 25) -> str:
        lines: list[str] = [f"=== {title} ==="]
        if not matches:
            lines.append("(no results yet)")
        for m in list(matches)[:max_lines]:
            stamp = m.completed_at.strftime("%b %d") if m.completed_at else "--"
            lines.append(f"{_pad(stamp, 6)} {self._line(m, show_when=False)}")
        return "```text\n" + "\n".join(lines).rstrip() + "\n```"
