"""
Unit tests for team results and player leaderboards.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Player, Fixture
from core.standings import (determine_winner, calculate_team_stats, calculate_player_stats,
                            overall_leaderboard, monthly_leaderboard, weekly_leaderboard)


def played(fixture_id, team_a, team_b, winner, played_at):
    score_a, score_b = (21, 15) if winner == 'teamA' else (15, 21)
    return Fixture(id=fixture_id, team_a=team_a, team_b=team_b, status='completed',
                   score_a=score_a, score_b=score_b, winner=winner, played_at=played_at)


@pytest.fixture
def players():
    return [
        Player(id='p1', name='Alice', skill_level='advanced'),
        Player(id='p2', name='Bob', skill_level='beginner'),
        Player(id='p3', name='Carol', skill_level='intermediate'),
        Player(id='p4', name='Dave', skill_level='advanced'),
        Player(id='p5', name='Erin', skill_level='beginner'),
    ]


@pytest.fixture
def fixtures():
    return [
        # 2026-03-02 is a Monday in ISO week 10
        played('m1', ['p1', 'p2'], ['p3', 'p4'], 'teamA', '2026-03-02T10:00:00'),
        played('m2', ['p1', 'p3'], ['p2', 'p4'], 'teamA', '2026-03-03T10:00:00'),
        played('m3', ['p1', 'p4'], ['p2', 'p3'], 'teamB', '2026-04-15T10:00:00'),
        Fixture(id='m4', team_a=['p1', 'p2'], team_b=['p3', 'p4']),
    ]


class TestDetermineWinner:

    def test_team_a_wins(self):
        assert determine_winner(21, 15) == 'teamA'

    def test_team_b_wins(self):
        assert determine_winner(19, 21) == 'teamB'

    def test_tie(self):
        assert determine_winner(20, 20) is None


class TestTeamStats:

    def test_counts_completed_wins(self, fixtures):
        teams = {'teamA': ['p1', 'p2'], 'teamB': ['p3', 'p4']}
        stats = calculate_team_stats(teams, fixtures)
        assert stats == {
            'teamA': {'wins': 2, 'players': ['p1', 'p2']},
            'teamB': {'wins': 1, 'players': ['p3', 'p4']},
        }

    def test_no_results(self):
        stats = calculate_team_stats({'teamA': ['p1'], 'teamB': ['p2']}, [])
        assert stats['teamA']['wins'] == 0
        assert stats['teamB']['wins'] == 0


class TestPlayerStats:

    def test_pending_fixtures_ignored(self, players, fixtures):
        rows = {r['id']: r for r in calculate_player_stats(players, fixtures)}
        assert rows['p1']['matchesPlayed'] == 3
        assert rows['p1']['matchesWon'] == 2
        assert rows['p1']['matchesLost'] == 1
        assert rows['p1']['winRate'] == 66.67

    def test_player_without_matches(self, players, fixtures):
        rows = {r['id']: r for r in calculate_player_stats(players, fixtures)}
        assert rows['p5'] == {
            'id': 'p5', 'name': 'Erin', 'skillLevel': 'beginner',
            'matchesPlayed': 0, 'matchesWon': 0, 'matchesLost': 0, 'winRate': 0,
        }

    def test_period_filters_by_played_at(self, players, fixtures):
        rows = {r['id']: r for r in calculate_player_stats(
            players, fixtures, period=lambda played_at: played_at.month == 3)}
        assert rows['p1']['matchesPlayed'] == 2
        assert rows['p1']['winRate'] == 100.0
        assert rows['p4']['matchesLost'] == 2

    def test_period_skips_results_without_date(self, players):
        fixture = played('m9', ['p1', 'p2'], ['p3', 'p4'], 'teamA', None)
        assert calculate_player_stats(players, [fixture])[0]['matchesPlayed'] == 1
        rows = calculate_player_stats(players, [fixture], period=lambda played_at: True)
        assert rows[0]['matchesPlayed'] == 0

    def test_unknown_players_in_fixtures_ignored(self, players):
        fixture = played('m9', ['p1', 'ghost'], ['p2', 'p3'], 'teamA', '2026-03-02T10:00:00')
        rows = {r['id']: r for r in calculate_player_stats(players, [fixture])}
        assert rows['p1']['matchesWon'] == 1
        assert 'ghost' not in rows


class TestLeaderboards:

    def test_overall_order(self, players, fixtures):
        board = overall_leaderboard(players, fixtures)
        assert len(board) == 5
        # p1, p2 and p3 tie on rate and wins; stable order keeps roster order
        assert [r['id'] for r in board[:3]] == ['p1', 'p2', 'p3']
        assert board[-1]['winRate'] == 0

    def test_overall_tie_broken_by_wins(self):
        players = [Player(id='x', name='X', skill_level='beginner'),
                   Player(id='y', name='Y', skill_level='beginner')]
        fixtures = [
            played('1', ['x', 'a'], ['b', 'c'], 'teamA', '2026-01-05T10:00:00'),
            played('2', ['y', 'a'], ['b', 'c'], 'teamA', '2026-01-05T10:00:00'),
            played('3', ['y', 'a'], ['b', 'c'], 'teamA', '2026-01-05T10:00:00'),
        ]
        board = overall_leaderboard(players, fixtures)
        assert [r['id'] for r in board] == ['y', 'x']

    def test_monthly_only_counts_that_month(self, players, fixtures):
        board = monthly_leaderboard(players, fixtures, 2026, 3)
        rows = {r['id']: r for r in board}
        assert set(rows) == {'p1', 'p2', 'p3', 'p4'}
        assert rows['p1']['matchesPlayed'] == 2
        assert rows['p1']['winRate'] == 100.0

    def test_monthly_excludes_players_without_matches(self, players, fixtures):
        board = monthly_leaderboard(players, fixtures, 2026, 4)
        assert {r['id'] for r in board} == {'p1', 'p2', 'p3', 'p4'}
        assert all(r['matchesPlayed'] == 1 for r in board)

    def test_monthly_empty_period(self, players, fixtures):
        assert monthly_leaderboard(players, fixtures, 2025, 3) == []

    def test_weekly_uses_iso_week(self, players, fixtures):
        board = weekly_leaderboard(players, fixtures, 2026, 10)
        rows = {r['id']: r for r in board}
        assert rows['p1']['matchesPlayed'] == 2
        assert weekly_leaderboard(players, fixtures, 2026, 11) == []
