"""Tests for playoff seeding, series state and bracket progression."""

import pytest

from domain.enums import CompletionRule, MatchPhase, MatchStatus, PlayoffRound, SeasonStatus, SeriesTransition
from domain.models import Match, SeriesState, plan_series_transition
from services.errors import InvalidStateError, NotFoundError, ValidationError


def _game(series_key, game_number, a, b, winner=None, *, best_of=3):
    return Match(
        match_id=game_number,
        season_id=1,
        phase=MatchPhase.PLAYOFFS,
        team_a_id=a,
        team_b_id=b,
        team_a_name=f"T{a}",
        team_b_name=f"T{b}",
        status=MatchStatus.COMPLETE if winner else MatchStatus.TBD,
        winner_team_id=winner,
        playoff_round=PlayoffRound.QF,
        series_key=series_key,
        best_of=best_of,
        game_number=game_number,
    )


def _series(key, a, b, *winners, best_of=3):
    games = [_game(key, i, a, b, w, best_of=best_of) for i, w in enumerate(winners, start=1)]
    return SeriesState.from_games(games or [_game(key, 1, a, b, best_of=best_of)])


class TestSeriesState:
    """Tests for the derived series view."""

    def test_needs_majority_of_best_of(self):
        """Best-of-3 needs 2, best-of-5 needs 3."""
        assert _series("QF-1", 1, 2).needed_wins == 2
        assert _series("F-1", 1, 2, best_of=5).needed_wins == 3

    def test_winner_set_at_needed_wins(self):
        """The series is decided exactly when one side reaches needed wins."""
        one_each = _series("QF-1", 1, 2, 1, 2)
        assert (one_each.team_a_wins, one_each.team_b_wins) == (1, 1)
        assert one_each.winner_team_id is None

        done = _series("QF-1", 1, 2, 1, 2, 1)
        assert done.is_decided
        assert done.winner_team_id == 1
        assert done.loser_team_id == 2
        assert done.score_line == "2-1"


class TestPlanSeriesTransition:
    """Tests for the pure re-seed planner."""

    def test_noop_until_both_feeders_decided(self):
        left = _series("QF-1", 1, 8, 1, 1)
        right = _series("QF-2", 4, 5, 4)
        assert plan_series_transition(left, right, None) == SeriesTransition.NOOP
        assert plan_series_transition(left, None, None) == SeriesTransition.NOOP

    def test_create_when_missing(self):
        left = _series("QF-1", 1, 8, 1, 1)
        right = _series("QF-2", 4, 5, 5, 5)
        assert plan_series_transition(left, right, None) == SeriesTransition.CREATE

    def test_noop_when_teams_already_match(self):
        left = _series("QF-1", 1, 8, 1, 1)
        right = _series("QF-2", 4, 5, 5, 5)
        existing = _series("SF-1", 1, 5)
        assert plan_series_transition(left, right, existing) == SeriesTransition.NOOP

    def test_reset_when_a_feeder_winner_changed(self):
        left = _series("QF-1", 1, 8, 8, 8)
        right = _series("QF-2", 4, 5, 5, 5)
        existing = _series("SF-1", 1, 5, 1)
        assert plan_series_transition(left, right, existing) == SeriesTransition.RESET


class TestSeeding:
    """Tests for seed_playoffs() and the automatic trigger."""

    @pytest.mark.asyncio
    async def test_quarterfinal_pairings_follow_seeds(self, league):
        """QF-1 1v8, QF-2 4v5, QF-3 3v6, QF-4 2v7, all game 1 of a series."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)

        standings = await league.standings.compute_standings(season_id=season.season_id)
        seed = {s.rank: s.team_id for s in standings}
        expected = {"QF-1": (1, 8), "QF-2": (4, 5), "QF-3": (3, 6), "QF-4": (2, 7)}

        for key, (hi, lo) in expected.items():
            state = await league.playoffs.get_series_state(season_id=season.season_id, series_key=key)
            assert (state.team_a_id, state.team_b_id) == (seed[hi], seed[lo])
            assert state.best_of == 3
            assert [g.game_number for g in state.games] == [1]

        season = await league.refresh(season)
        assert season.status == SeasonStatus.PLAYOFFS
        assert season.playoffs_generated is True

    @pytest.mark.asyncio
    async def test_seeding_twice_is_a_no_op(self, league):
        """A second seed call creates nothing."""
        season, _ = await league.start_regular_season(8)
        await league.playoffs.seed_playoffs(season_id=season.season_id)
        before = len(league.match_repo.rows)

        again = await league.playoffs.seed_playoffs(season_id=season.season_id)

        assert again.created is False
        assert len(league.match_repo.rows) == before

    @pytest.mark.asyncio
    async def test_needs_eight_teams(self, league):
        """Six teams finish the regular season but cannot be seeded."""
        season, _ = await league.start_regular_season(6)
        await league.play_regular(season)

        assert await league.playoffs.is_regular_season_complete(season_id=season.season_id)
        assert (await league.refresh(season)).status == SeasonStatus.REGULAR
        with pytest.raises(ValidationError):
            await league.playoffs.seed_playoffs(season_id=season.season_id)

    @pytest.mark.asyncio
    async def test_rejects_signup_and_missing_season(self, league):
        """Seeding needs a season past signup; an unknown season is NotFound."""
        season = await league.season()
        await league.add_teams(season, 8)

        with pytest.raises(InvalidStateError):
            await league.playoffs.seed_playoffs(season_id=season.season_id)
        with pytest.raises(NotFoundError):
            await league.playoffs.seed_playoffs(season_id=77)

    @pytest.mark.asyncio
    async def test_force_start_before_regular_season_ends(self, league):
        """Admins may seed mid-season from the current standings."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season, limit=4)

        result = await league.playoffs.seed_playoffs(season_id=season.season_id)

        assert result.created is True
        assert len(await league.playoffs.list_series(season_id=season.season_id)) == 4


class TestCompletionRule:
    """Tests for the two regular-season completion checks."""

    @pytest.mark.asyncio
    async def test_no_schedule_is_not_complete(self, league):
        season = await league.season()
        await league.add_teams(season, 4)
        assert not await league.playoffs.is_regular_season_complete(season_id=season.season_id)

    @pytest.mark.asyncio
    async def test_all_matches_rule_waits_for_stragglers(self, league):
        """Strict rule: every regular match must be complete."""
        season, _ = await league.start_regular_season(4)
        league.season_repo.rows[season.season_id]["regular_rounds"] = 2
        await league.play_regular(season, limit=4)

        assert not await league.playoffs.is_regular_season_complete(season_id=season.season_id)

    @pytest.mark.asyncio
    async def test_rounds_rule_counts_completed_rounds(self, make_league):
        """Straggler-tolerant rule: regular_rounds x teams/2 results are enough."""
        league = make_league(completion_rule=CompletionRule.ROUNDS)
        season, _ = await league.start_regular_season(4)
        league.season_repo.rows[season.season_id]["regular_rounds"] = 2

        await league.play_regular(season, limit=3)
        assert not await league.playoffs.is_regular_season_complete(season_id=season.season_id)
        await league.play_regular(season, limit=1)
        assert await league.playoffs.is_regular_season_complete(season_id=season.season_id)


class TestProgression:
    """Tests for update_playoff_progression() and series resets."""

    @pytest.mark.asyncio
    async def test_games_open_one_at_a_time(self, league):
        """After game 1 the next game row appears; a 2-0 sweep leaves no open game."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)
        qf1 = await league.playoffs.get_series_state(season_id=season.season_id, series_key="QF-1")

        g1 = qf1.open_games[0]
        await league.matches.submit_match_score(match_id=g1.match_id, winner_team_name=qf1.team_a_name)
        qf1 = await league.playoffs.get_series_state(season_id=season.season_id, series_key="QF-1")
        assert [g.game_number for g in qf1.games] == [1, 2]
        assert qf1.score_line == "1-0"

        await league.matches.submit_match_score(match_id=qf1.open_games[0].match_id, winner_team_name=qf1.team_a_name)
        qf1 = await league.playoffs.get_series_state(season_id=season.season_id, series_key="QF-1")
        assert qf1.is_decided
        assert qf1.open_games == []
        assert len(qf1.games) == 2

    @pytest.mark.asyncio
    async def test_reset_refeeds_next_round(self, league):
        """Correcting QF-1 after SF-1 exists rewrites SF-1 with the new winner."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)
        sid = season.season_id

        qf1 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-1")
        qf2 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-2")
        await league.win_series(season, "QF-1", qf1.team_a_name)
        await league.win_series(season, "QF-2", qf2.team_a_name)
        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        assert (sf1.team_a_id, sf1.team_b_id) == (qf1.team_a_id, qf2.team_a_id)

        await league.matches.submit_match_score(match_id=sf1.open_games[0].match_id, winner_team_name=sf1.team_a_name)

        progression = await league.playoffs.reset_series(season_id=sid, series_key="QF-1")
        assert progression.transitions["SF-1"] == SeriesTransition.NOOP
        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        assert sf1.score_line == "0-0"

        await league.win_series(season, "QF-1", qf1.team_b_name)
        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        assert (sf1.team_a_id, sf1.team_b_id) == (qf1.team_b_id, qf2.team_a_id)
        assert sf1.team_a_name == qf1.team_b_name
        assert all(g.winner_team_id is None for g in sf1.games)

    @pytest.mark.asyncio
    async def test_progression_reports_reset_transition(self, league):
        """A changed feeder winner is reported as RESET by the progression step."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)
        sid = season.season_id

        qf1 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-1")
        qf2 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-2")
        await league.win_series(season, "QF-1", qf1.team_a_name)
        await league.win_series(season, "QF-2", qf2.team_a_name)

        # rewrite QF-1 directly so its winner flips while SF-1 still holds the old team
        for row in league.match_repo.rows.values():
            if row["series_key"] == "QF-1" and row["status"] == "COMPLETE":
                row["winner_team_id"], row["loser_team_id"] = qf1.team_b_id, qf1.team_a_id

        progression = await league.playoffs.update_playoff_progression(season_id=sid)

        assert progression.transitions["SF-1"] == SeriesTransition.RESET
        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        assert sf1.team_a_id == qf1.team_b_id

    @pytest.mark.asyncio
    async def test_reset_validation(self, league):
        """Unknown series is NotFound; resets before the playoffs are InvalidState."""
        season, _ = await league.start_regular_season(8)
        with pytest.raises(InvalidStateError):
            await league.playoffs.reset_series(season_id=season.season_id, series_key="QF-1")

        await league.play_regular(season)
        with pytest.raises(NotFoundError):
            await league.playoffs.reset_series(season_id=season.season_id, series_key="SF-2")

    @pytest.mark.asyncio
    async def test_later_rounds_wait_for_reset_feeders(self, league):
        """After QF-1 is cleared, SF-1 and the final refuse results until QF-1 is replayed."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)
        sid = season.season_id
        for key in ("QF-1", "QF-2", "QF-3", "QF-4", "SF-1", "SF-2", "F-1"):
            state = await league.playoffs.get_series_state(season_id=sid, series_key=key)
            await league.win_series(season, key, state.team_a_name)
        assert (await league.refresh(season)).status == SeasonStatus.COMPLETE

        await league.playoffs.reset_series(season_id=sid, series_key="QF-1")
        assert (await league.refresh(season)).status == SeasonStatus.PLAYOFFS

        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        final = await league.playoffs.get_series_state(season_id=sid, series_key="F-1")
        with pytest.raises(InvalidStateError, match="Waiting on QF-1"):
            await league.matches.submit_match_score(match_id=sf1.open_games[0].match_id, winner_team_name=sf1.team_a_name)
        with pytest.raises(InvalidStateError, match="Waiting on SF-1"):
            await league.matches.submit_match_score(match_id=final.open_games[0].match_id, winner_team_name=final.team_a_name)
        with pytest.raises(InvalidStateError, match="Waiting on SF-1"):
            await league.matches.submit_series_score(season_id=sid, series_key="F-1", team_a_wins=3, team_b_wins=0)

        assert (await league.refresh(season)).status == SeasonStatus.PLAYOFFS
        assert all(not g.is_complete for g in (await league.playoffs.get_series_state(season_id=sid, series_key="F-1")).games)

        qf1 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-1")
        await league.win_series(season, "QF-1", qf1.team_a_name)
        await league.win_series(season, "SF-1", sf1.team_a_name)
        await league.win_series(season, "F-1", final.team_a_name)

        assert (await league.refresh(season)).status == SeasonStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_series_with_outdated_teams_is_not_playable(self, league):
        """A semifinal whose teams no longer match the feeder winners refuses results."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)
        sid = season.season_id

        qf1 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-1")
        qf2 = await league.playoffs.get_series_state(season_id=sid, series_key="QF-2")
        await league.win_series(season, "QF-1", qf1.team_a_name)
        await league.win_series(season, "QF-2", qf2.team_a_name)

        # flip QF-1 underneath SF-1 without running progression
        for row in league.match_repo.rows.values():
            if row["series_key"] == "QF-1" and row["status"] == "COMPLETE":
                row["winner_team_id"], row["loser_team_id"] = qf1.team_b_id, qf1.team_a_id

        sf1 = await league.playoffs.get_series_state(season_id=sid, series_key="SF-1")
        with pytest.raises(InvalidStateError, match="waiting for its teams"):
            await league.matches.submit_match_score(match_id=sf1.open_games[0].match_id, winner_team_name=sf1.team_a_name)

    @pytest.mark.asyncio
    async def test_progression_before_seeding_does_nothing(self, league):
        """No bracket yet: nothing is created."""
        season, _ = await league.start_regular_season(8)

        progression = await league.playoffs.update_playoff_progression(season_id=season.season_id)

        assert progression.transitions == {}
        assert progression.season_status == SeasonStatus.REGULAR

    @pytest.mark.asyncio
    async def test_list_series_in_bracket_order(self, league):
        """Quarterfinals first, in key order."""
        season, _ = await league.start_regular_season(8)
        await league.play_regular(season)

        keys = [s.series_key for s in await league.playoffs.list_series(season_id=season.season_id)]

        assert keys == ["QF-1", "QF-2", "QF-3", "QF-4"]
