import argparse
import logging
import os
import random
import sys
import yaml
from core.fixtures import FixtureScheduler

def load_teams(file_path):
    """Read ``team_a`` and ``team_b`` player lists from a YAML file."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    team_a = [str(name) for name in data.get('team_a') or []]
    team_b = [str(name) for name in data.get('team_b') or []]
    return team_a, team_b

def format_fixture(fixture):
    return f"{' & '.join(fixture.team_a)} vs {' & '.join(fixture.team_b)}"

def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description='Generate balanced doubles fixtures for two teams.')
    parser.add_argument('teams_file', nargs='?', default=os.path.join(base_dir, 'data', 'teams.yaml'))
    parser.add_argument('--matches-per-player', type=int, default=6)
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--debug', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    team_a, team_b = load_teams(args.teams_file)
    if len(team_a) < 2 or len(team_b) < 2:
        print(f"Warning: each team needs at least 2 players ({len(team_a)} and {len(team_b)} found). No fixtures generated.",
              file=sys.stderr)
        return 1

    try:
        scheduler = FixtureScheduler(team_a, team_b, args.matches_per_player, rng=random.Random(args.seed))
    except ValueError as e:
        print(f"Warning: {e}. No fixtures generated.", file=sys.stderr)
        return 1
    fixtures = scheduler.generate()

    print(f"# Fixtures ({len(fixtures)})")
    for number, fixture in enumerate(fixtures, start=1):
        print(f"{number}. {format_fixture(fixture)}")

    print()
    print("# Participation")
    for player in team_a + team_b:
        print(f"{player}: {scheduler.match_count[player]}")
    return 0

if __name__ == '__main__':
    sys.exit(main())
