# renderers/bracket_view.py
from __future__ import annotations

from typing import Optional, Sequence

from domain.enums import PlayoffRound
from domain.models import BEST_OF, NEXT_ROUND_FEEDS, QUARTERFINAL_SEEDS, SeriesState

_SECTIONS: tuple[tuple[PlayoffRound, str], ...] = (
    (PlayoffRound.QF, "QUARTERFINALS"),
    (PlayoffRound.SF, "SEMIFINALS"),
    (PlayoffRound.F, "FINAL"),
)


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) >= width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _status_mark(s: SeriesState) -> str:
    if s.is_decided:
        return f"✅ {s.winner_name}"
    if any(g.is_complete for g in s.games):
        return "⏳ in progress"
    return "•"


class BracketView:
    """
    Text bracket renderer for Discord (monospace).

    Input: SeriesState list from PlayoffService.list_series().
    Series that do not exist yet are shown as TBD so the full bracket shape is visible.
    """

    def __init__(self, *, name_width: int = 20) -> None:
        self._name_width = int(name_width)

    def render(
        self,
        *,
        series: Sequence[SeriesState],
        title: str = "Playoffs",
        champion: Optional[str] = None,
    ) -> str:
        by_key = {s.series_key: s for s in series}

        lines: list[str] = [f"=== {title} ===", ""]
        for rnd, label in _SECTIONS:
            keys = _keys_for(rnd)
            lines.append(f"-- {label} (best of {BEST_OF[rnd]}) --")
            for key in keys:
                s = by_key.get(key)
                if s is None:
                    lines.append(f"  {_pad(key, 5)} {_pad('TBD', self._name_width)} vs {_pad('TBD', self._name_width)}")
                    continue
                left = _pad(s.team_a_name, self._name_width)
                right = _pad(s.team_b_name, self._name_width)
                lines.append(f"  {_pad(key, 5)} {left} vs {right}  {s.score_line}  {_status_mark(s)}")
            lines.append("")

        if champion:
            lines.append(f"🏆 Champion: {champion}")

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"


def _keys_for(rnd: PlayoffRound) -> list[str]:
    if rnd == PlayoffRound.QF:
        return [k for k, _, _ in QUARTERFINAL_SEEDS]
    return [k for k, r, _, _ in NEXT_ROUND_FEEDS if r == rnd]
