"""
Match results: team totals for a tournament and player leaderboards.
"""
from datetime import datetime


def determine_winner(score_a, score_b):
    """Return 'teamA' or 'teamB', or None for a tie."""
    if score_a > score_b:
        return 'teamA'
    if score_b > score_a:
        return 'teamB'
    return None


def _parse_played_at(value):
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    return datetime.fromisoformat(value)


def calculate_team_stats(teams, fixtures):
    completed = [f for f in fixtures if f.status == 'completed']
    return {
        'teamA': {
            'wins': sum(1 for f in completed if f.winner == 'teamA'),
            'players': list(teams['teamA']),
        },
        'teamB': {
            'wins': sum(1 for f in completed if f.winner == 'teamB'),
            'players': list(teams['teamB']),
        },
    }


def calculate_player_stats(players, fixtures, period=None):
    """Aggregate completed fixtures into one row per player.

    ``period`` is an optional predicate on the fixture's played-at datetime;
    fixtures outside it are ignored.
    """
    stats = {p.id: {'played': 0, 'won': 0, 'lost': 0} for p in players}
    for fixture in fixtures:
        if fixture.status != 'completed':
            continue
        if period is not None:
            played_at = _parse_played_at(fixture.played_at)
            if played_at is None or not period(played_at):
                continue
        for side, members in (('teamA', fixture.team_a), ('teamB', fixture.team_b)):
            for player_id in members:
                if player_id not in stats:
                    continue
                stats[player_id]['played'] += 1
                if fixture.winner == side:
                    stats[player_id]['won'] += 1
                elif fixture.winner is not None:
                    stats[player_id]['lost'] += 1

    rows = []
    for p in players:
        s = stats[p.id]
        win_rate = round(s['won'] / s['played'] * 100, 2) if s['played'] else 0
        rows.append({
            'id': p.id,
            'name': p.name,
            'skillLevel': p.skill_level,
            'matchesPlayed': s['played'],
            'matchesWon': s['won'],
            'matchesLost': s['lost'],
            'winRate': win_rate,
        })
    return rows


def _rank(rows):
    return sorted(rows, key=lambda r: (-r['winRate'], -r['matchesWon']))


def overall_leaderboard(players, fixtures):
    return _rank(calculate_player_stats(players, fixtures))


def monthly_leaderboard(players, fixtures, year, month):
    rows = calculate_player_stats(
        players, fixtures,
        period=lambda played_at: played_at.year == year and played_at.month == month)
    return _rank([r for r in rows if r['matchesPlayed'] > 0])


def weekly_leaderboard(players, fixtures, year, week):
    # Calendar year, ISO week number
    rows = calculate_player_stats(
        players, fixtures,
        period=lambda played_at: played_at.year == year and played_at.isocalendar()[1] == week)
    return _rank([r for r in rows if r['matchesPlayed'] > 0])
