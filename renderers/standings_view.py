# renderers/standings_view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from domain.models import Standing


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _rpad(s: str, width: int) -> str:
    s = s or ""
    return (" " * (width - len(s))) + s if len(s) < width else s


def _pct(v: float) -> str:
    # .750 / 1.000 style
    txt = f"{v:.3f}"
    return txt[1:] if txt.startswith("0") else txt


def _signed(n: int) -> str:
    return f"+{n}" if n > 0 else str(n)


@dataclass(frozen=True)
class StandingsOptions:
    max_rows: int = 24
    name_width: int = 22
    show_points: bool = True
    playoff_line: int = 8
    title: str = "Standings"


class StandingsView:
    """
    Monospace standings table for Discord.
    A dashed cut line is drawn under the last playoff spot.
    """

    def render(self, rows: Sequence[Standing], *, opts: StandingsOptions | None = None) -> str:
        o = opts or StandingsOptions()
        data = list(rows)[: o.max_rows]

        name_w = max(o.name_width, min(30, max((len(s.team_name) for s in data), default=o.name_width)))
        num_w = 4

        header = (
            f"{_pad('#', 3)} {_pad('Team', name_w)} "
            f"{_rpad('W', num_w)} {_rpad('L', num_w)} {_rpad('PCT', 5)}"
        )
        if o.show_points:
            header += f" {_rpad('PF', num_w)} {_rpad('PA', num_w)} {_rpad('DIFF', 5)}"

        lines: list[str] = [f"=== {o.title} ===", header, "-" * len(header)]
        if not data:
            lines.append("(no teams yet)")

        for s in data:
            line = (
                f"{_pad(str(s.rank), 3)} {_pad(s.team_name, name_w)} "
                f"{_rpad(str(s.wins), num_w)} {_rpad(str(s.losses), num_w)} {_rpad(_pct(s.win_pct), 5)}"
            )
            if o.show_points:
                line += (
                    f" {_rpad(str(s.points_for), num_w)} {_rpad(str(s.points_against), num_w)}"
                    f" {_rpad(_signed(s.point_differential), 5)}"
                )
            lines.append(line)
            if o.playoff_line and s.rank == o.playoff_line and len(data) > o.playoff_line:
                lines.append("- " * (len(header) // 2))

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"
