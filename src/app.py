"""
Flask web application for Badminton Doubles Tournaments.
"""
import os
import uuid
import logging
import yaml
from datetime import datetime
from filelock import FileLock, Timeout
from flask import Flask, request, jsonify
from core.models import Player, Fixture, SKILL_LEVELS
from core.fixtures import generate_fixtures, participation_counts
from core.teams import create_balanced_teams, DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS
from core.standings import (calculate_team_stats, calculate_player_stats, determine_winner,
                            overall_leaderboard, monthly_leaderboard, weekly_leaderboard)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', DEFAULT_MODEL)
AI_TIMEOUT_SECONDS = int(os.environ.get('AI_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS))

DEFAULT_MATCHES_PER_PLAYER = 6
MIN_TOURNAMENT_PLAYERS = 4
LOCK_TIMEOUT_SECONDS = 10

# Fixed roster for /api/test-fixtures
TEST_TEAMS = {
    'teamA': ['player1', 'player2', 'player3', 'player4', 'player5'],
    'teamB': ['player6', 'player7', 'player8', 'player9', 'player10'],
}


def _file_path(filename: str) -> str:
    """Return full path to a data file."""
    return os.path.join(DATA_DIR, filename)


def _data_lock() -> FileLock:
    """Lock guarding read-modify-write cycles on the data files."""
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(_file_path('.lock'), timeout=LOCK_TIMEOUT_SECONDS)


def _load_yaml(filename: str, default):
    path = _file_path(filename)
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
            return data if data else default
    except (OSError, yaml.YAMLError) as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return default


def _save_yaml(filename: str, data):
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(_file_path(filename), 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_players() -> list:
    """Load the player roster."""
    return _load_yaml('players.yaml', {'players': []}).get('players', [])


def save_players(players: list):
    """Save the player roster."""
    _save_yaml('players.yaml', {'players': players})


def load_tournaments() -> dict:
    """Load the tournament registry (active id plus all tournaments)."""
    data = _load_yaml('tournaments.yaml', {'active': None, 'tournaments': []})
    data.setdefault('active', None)
    data.setdefault('tournaments', [])
    return data


def save_tournaments(data: dict):
    """Save the tournament registry."""
    _save_yaml('tournaments.yaml', data)


def load_matches() -> list:
    """Load every stored match row, across all tournaments."""
    return _load_yaml('matches.yaml', {'matches': []}).get('matches', [])


def save_matches(matches: list):
    """Save match rows."""
    _save_yaml('matches.yaml', {'matches': matches})


def get_active_tournament(registry: dict):
    active_id = registry.get('active')
    return next((t for t in registry['tournaments'] if t['id'] == active_id), None)


def tournament_fixtures(matches: list, tournament_id: str) -> list:
    return [Fixture.from_dict(m) for m in matches if m.get('tournamentId') == tournament_id]


def _match_rows(tournament_id: str, fixtures: list) -> list:
    return [{**fixture.to_dict(), 'tournamentId': tournament_id} for fixture in fixtures]


def _replace_tournament_matches(tournament_id: str, fixtures: list):
    matches = [m for m in load_matches() if m.get('tournamentId') != tournament_id]
    matches.extend(_match_rows(tournament_id, fixtures))
    save_matches(matches)


def _has_results(matches: list, tournament_id: str) -> bool:
    return any(m.get('tournamentId') == tournament_id and m.get('status') == 'completed'
               for m in matches)


def serialize_tournament(tournament: dict, fixtures: list) -> dict:
    """Shape a stored tournament and its fixtures for the front end."""
    players = tournament['team_a'] + tournament['team_b']
    payload = {
        'id': tournament['id'],
        'teams': {'teamA': tournament['team_a'], 'teamB': tournament['team_b']},
        'fixtures': [f.to_dict() for f in fixtures],
        'matchesPerPlayer': tournament['matches_per_player'],
        'status': tournament['status'],
        'createdAt': tournament['created_at'],
        'participation': participation_counts(fixtures, players),
    }
    if tournament.get('regenerated_at'):
        payload['regeneratedAt'] = tournament['regenerated_at']
    if tournament.get('swapped_at'):
        payload['swappedAt'] = tournament['swapped_at']
    return payload


def _roster(player_rows: list) -> list:
    return [Player.from_dict(row) for row in player_rows]


def _validate_matches_per_player(value):
    """Return an error message, or None if value is a usable target."""
    if isinstance(value, bool) or not isinstance(value, int):
        return 'matchesPerPlayer must be an integer'
    if value < 1:
        return 'matchesPerPlayer must be at least 1'
    return None


def _validate_score(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _schedule(players: list, matches_per_player: int):
    """Split players into teams and generate their fixtures."""
    team_a, team_b = create_balanced_teams(players, matches_per_player, api_key=GEMINI_API_KEY,
                                           model=GEMINI_MODEL, timeout=AI_TIMEOUT_SECONDS)
    fixtures = generate_fixtures(team_a, team_b, matches_per_player)
    if not fixtures:
        app.logger.warning(f'No fixtures produced for teams of {len(team_a)} and {len(team_b)} players')
    return team_a, team_b, fixtures


def _log_schedule(action: str, tournament: dict, fixtures: list):
    app.logger.info(f'Tournament {action} with {len(fixtures)} matches')
    app.logger.info(f'Team A: {len(tournament["team_a"])} players, '
                    f'Team B: {len(tournament["team_b"])} players, '
                    f'matches per player: {tournament["matches_per_player"]}')


@app.errorhandler(Timeout)
def handle_lock_timeout(e):
    app.logger.error(f'Could not acquire data lock: {e}')
    return jsonify({'error': 'Data store is busy, try again'}), 503


@app.errorhandler(500)
def handle_internal_error(e):
    app.logger.error(f'Unhandled error: {getattr(e, "original_exception", e)}')
    return jsonify({'error': 'Internal server error'}), 500


# Player Management Routes

@app.route('/api/players', methods=['GET'])
def api_list_players():
    """List players, newest first, with their overall match record."""
    rows = sorted(load_players(), key=lambda p: p.get('created_at') or '', reverse=True)
    players = _roster(rows)
    fixtures = [Fixture.from_dict(m) for m in load_matches()]
    stats = {s['id']: s for s in calculate_player_stats(players, fixtures)}
    return jsonify([{
        'id': p.id,
        'name': p.name,
        'skillLevel': p.skill_level,
        'matchesPlayed': stats[p.id]['matchesPlayed'],
        'matchesWon': stats[p.id]['matchesWon'],
    } for p in players])


@app.route('/api/players', methods=['POST'])
def api_create_player():
    """Add a player to the roster."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    skill_level = data.get('skillLevel')

    if not name or not skill_level:
        return jsonify({'error': 'Name and skill level are required'}), 400
    skill_level = str(skill_level).lower()
    if skill_level not in SKILL_LEVELS:
        return jsonify({'error': 'Invalid skill level. Must be beginner, intermediate, or advanced'}), 400

    with _data_lock():
        players = load_players()
        if any(p['name'] == name for p in players):
            return jsonify({'error': 'Player name already exists'}), 400
        player = Player(id=str(uuid.uuid4()), name=name, skill_level=skill_level,
                        created_at=datetime.now().isoformat())
        players.append(player.to_dict())
        save_players(players)

    return jsonify({
        'id': player.id,
        'name': player.name,
        'skillLevel': player.skill_level,
        'matchesPlayed': 0,
        'matchesWon': 0,
    }), 201


@app.route('/api/players/<player_id>', methods=['DELETE'])
def api_delete_player(player_id):
    """Remove a player and every match they took part in."""
    with _data_lock():
        players = load_players()
        remaining = [p for p in players if p['id'] != player_id]
        if len(remaining) == len(players):
            return jsonify({'error': 'Player not found'}), 404
        save_players(remaining)
        matches = load_matches()
        save_matches([m for m in matches
                      if player_id not in m.get('teamA', []) + m.get('teamB', [])])
    return jsonify({'message': 'Player deleted successfully'})


# Tournament Management Routes

@app.route('/api/tournament/current', methods=['GET'])
def api_current_tournament():
    """Return the active tournament, or null."""
    tournament = get_active_tournament(load_tournaments())
    if tournament is None:
        return jsonify(None)
    return jsonify(serialize_tournament(tournament, tournament_fixtures(load_matches(), tournament['id'])))


@app.route('/api/tournament/create', methods=['POST'])
def api_create_tournament():
    """Split the selected players into two teams and schedule their fixtures."""
    data = request.get_json(silent=True) or {}
    player_ids = data.get('playerIds') or []
    matches_per_player = data.get('matchesPerPlayer', DEFAULT_MATCHES_PER_PLAYER)

    if not isinstance(player_ids, list) or not all(isinstance(pid, str) for pid in player_ids):
        return jsonify({'error': 'playerIds must be a list of player IDs'}), 400
    if len(player_ids) < MIN_TOURNAMENT_PLAYERS:
        return jsonify({'error': f'At least {MIN_TOURNAMENT_PLAYERS} players are required for a tournament'}), 400
    error = _validate_matches_per_player(matches_per_player)
    if error:
        return jsonify({'error': error}), 400

    players_by_id = {p['id']: p for p in load_players()}
    if len(set(player_ids)) != len(player_ids) or any(pid not in players_by_id for pid in player_ids):
        return jsonify({'error': 'Some selected players not found'}), 400
    selected = _roster(players_by_id[pid] for pid in player_ids)

    team_a, team_b, fixtures = _schedule(selected, matches_per_player)
    tournament = {
        'id': str(uuid.uuid4()),
        'matches_per_player': matches_per_player,
        'status': 'active',
        'created_at': datetime.now().isoformat(),
        'team_a': team_a,
        'team_b': team_b,
    }

    with _data_lock():
        registry = load_tournaments()
        registry['tournaments'].append(tournament)
        registry['active'] = tournament['id']
        save_tournaments(registry)
        _replace_tournament_matches(tournament['id'], fixtures)

    _log_schedule('created', tournament, fixtures)
    return jsonify(serialize_tournament(tournament, fixtures))


@app.route('/api/tournament/regenerate', methods=['POST'])
def api_regenerate_tournament():
    """Re-split the active tournament's players and schedule fresh fixtures."""
    data = request.get_json(silent=True) or {}
    registry = load_tournaments()
    tournament = get_active_tournament(registry)
    if tournament is None:
        return jsonify({'error': 'No active tournament to regenerate'}), 400

    matches_per_player = data.get('matchesPerPlayer', tournament['matches_per_player'])
    error = _validate_matches_per_player(matches_per_player)
    if error:
        return jsonify({'error': error}), 400
    if _has_results(load_matches(), tournament['id']):
        return jsonify({'error': 'Tournament already has recorded results'}), 400

    players_by_id = {p['id']: p for p in load_players()}
    player_ids = tournament['team_a'] + tournament['team_b']
    if any(pid not in players_by_id for pid in player_ids):
        return jsonify({'error': 'Some players not found'}), 400

    tournament_id = tournament['id']
    team_a, team_b, fixtures = _schedule(_roster(players_by_id[pid] for pid in player_ids),
                                         matches_per_player)

    # State may have changed while the teams were being drawn
    with _data_lock():
        registry = load_tournaments()
        tournament = get_active_tournament(registry)
        if tournament is None or tournament['id'] != tournament_id:
            return jsonify({'error': 'Tournament is no longer active'}), 400
        if _has_results(load_matches(), tournament_id):
            return jsonify({'error': 'Tournament already has recorded results'}), 400
        tournament.update({
            'team_a': team_a,
            'team_b': team_b,
            'matches_per_player': matches_per_player,
            'regenerated_at': datetime.now().isoformat(),
        })
        save_tournaments(registry)
        _replace_tournament_matches(tournament['id'], fixtures)

    _log_schedule('regenerated', tournament, fixtures)
    return jsonify(serialize_tournament(tournament, fixtures))


@app.route('/api/tournament/swap-players', methods=['POST'])
def api_swap_players():
    """Swap two players' places and regenerate fixtures for the new teams."""
    data = request.get_json(silent=True) or {}
    player1_id = data.get('player1Id')
    player2_id = data.get('player2Id')

    if not player1_id or not player2_id:
        return jsonify({'error': 'Both player IDs are required'}), 400
    if player1_id == player2_id:
        return jsonify({'error': 'Cannot swap a player with themselves'}), 400

    with _data_lock():
        registry = load_tournaments()
        tournament = get_active_tournament(registry)
        if tournament is None:
            return jsonify({'error': 'No active tournament'}), 400

        team_a = list(tournament['team_a'])
        team_b = list(tournament['team_b'])

        def locate(player_id):
            for team in (team_a, team_b):
                if player_id in team:
                    return team, team.index(player_id)
            return None, None

        team1, index1 = locate(player1_id)
        team2, index2 = locate(player2_id)
        if team1 is None or team2 is None:
            return jsonify({'error': 'One or both players not found in tournament'}), 400
        matches = load_matches()
        if _has_results(matches, tournament['id']):
            return jsonify({'error': 'Tournament already has recorded results'}), 400

        team1[index1], team2[index2] = team2[index2], team1[index1]
        fixtures = generate_fixtures(team_a, team_b, tournament['matches_per_player'])
        tournament.update({
            'team_a': team_a,
            'team_b': team_b,
            'swapped_at': datetime.now().isoformat(),
        })
        save_tournaments(registry)
        _replace_tournament_matches(tournament['id'], fixtures)

    app.logger.info(f'Players swapped: {player1_id} <-> {player2_id}')
    _log_schedule('rescheduled', tournament, fixtures)
    return jsonify(serialize_tournament(tournament, fixtures))


@app.route('/api/tournament/score', methods=['POST'])
def api_submit_score():
    """Record the score of a pending fixture."""
    data = request.get_json(silent=True) or {}
    fixture_id = data.get('fixtureId')
    score_a = data.get('teamAScore')
    score_b = data.get('teamBScore')

    if not fixture_id:
        return jsonify({'error': 'fixtureId is required'}), 400
    if not _validate_score(score_a) or not _validate_score(score_b):
        return jsonify({'error': 'Scores must be non-negative integers'}), 400
    winner = determine_winner(score_a, score_b)
    if winner is None:
        return jsonify({'error': 'Scores cannot be tied'}), 400

    with _data_lock():
        tournament = get_active_tournament(load_tournaments())
        if tournament is None:
            return jsonify({'error': 'No active tournament'}), 400

        matches = load_matches()
        row = next((m for m in matches
                    if m['id'] == fixture_id and m.get('tournamentId') == tournament['id']), None)
        if row is None:
            return jsonify({'error': 'Fixture not found'}), 404
        if row.get('status') != 'pending':
            return jsonify({'error': 'Fixture already completed'}), 400

        row.update({
            'status': 'completed',
            'scoreA': score_a,
            'scoreB': score_b,
            'winner': winner,
            'playedAt': datetime.now().isoformat(),
        })
        save_matches(matches)

    return jsonify(Fixture.from_dict(row).to_dict())


@app.route('/api/tournament/results', methods=['GET'])
def api_tournament_results():
    """Team win totals and completed fixtures for the active tournament."""
    tournament = get_active_tournament(load_tournaments())
    if tournament is None:
        return jsonify({'error': 'No active tournament'}), 400

    fixtures = tournament_fixtures(load_matches(), tournament['id'])
    completed = [f for f in fixtures if f.status == 'completed']
    teams = {'teamA': tournament['team_a'], 'teamB': tournament['team_b']}
    return jsonify({
        'tournament': serialize_tournament(tournament, fixtures),
        'teamStats': calculate_team_stats(teams, completed),
        'completedFixtures': [f.to_dict() for f in completed],
    })


# Leaderboard Routes

def _leaderboard_inputs():
    players = _roster(load_players())
    fixtures = [Fixture.from_dict(m) for m in load_matches()]
    return players, fixtures


@app.route('/api/leaderboard/overall', methods=['GET'])
def api_leaderboard_overall():
    players, fixtures = _leaderboard_inputs()
    return jsonify(overall_leaderboard(players, fixtures))


@app.route('/api/leaderboard/monthly', methods=['GET'])
def api_leaderboard_monthly():
    year = request.args.get('year', type=int)
    month = request.args.get('month', type=int)
    if year is None or month is None:
        return jsonify({'error': 'Year and month parameters are required'}), 400
    if not 1 <= month <= 12:
        return jsonify({'error': 'Month must be between 1 and 12'}), 400
    players, fixtures = _leaderboard_inputs()
    return jsonify(monthly_leaderboard(players, fixtures, year, month))


@app.route('/api/leaderboard/weekly', methods=['GET'])
def api_leaderboard_weekly():
    year = request.args.get('year', type=int)
    week = request.args.get('week', type=int)
    if year is None or week is None:
        return jsonify({'error': 'Year and week parameters are required'}), 400
    if not 1 <= week <= 53:
        return jsonify({'error': 'Week must be between 1 and 53'}), 400
    players, fixtures = _leaderboard_inputs()
    return jsonify(weekly_leaderboard(players, fixtures, year, week))


@app.route('/api/test-fixtures', methods=['GET'])
def api_test_fixtures():
    """Run the fixture generator on a fixed ten-player roster."""
    fixtures = generate_fixtures(TEST_TEAMS['teamA'], TEST_TEAMS['teamB'], DEFAULT_MATCHES_PER_PLAYER)
    return jsonify({
        'message': 'Test fixture generation',
        'teams': TEST_TEAMS,
        'fixtures': [f.to_dict() for f in fixtures],
        'totalMatches': len(fixtures),
        'participation': participation_counts(fixtures, TEST_TEAMS['teamA'] + TEST_TEAMS['teamB']),
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=int(os.environ.get('PORT', 10000)))
