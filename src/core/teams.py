"""
Splitting a roster into two teams.

The balanced split is delegated to a generative-AI text API. Anything that
goes wrong there (no key, network error, unusable reply) falls back to a
random split so a tournament can always be created.
"""
import json
import logging
import math
import random
import re

import requests

logger = logging.getLogger(__name__)

GEMINI_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'
DEFAULT_MODEL = 'gemini-1.5-flash'
DEFAULT_TIMEOUT_SECONDS = 20

_FENCE_RE = re.compile(r'```(?:json)?\n?|\n?```')


class TeamSplitError(Exception):
    """Raised when the AI service cannot produce a usable team split."""


def build_prompt(players, matches_per_player):
    roster = ', '.join(f"{p.name} ({p.skill_level})" for p in players)
    return f"""
    Create balanced teams for a badminton doubles tournament from these players:
    {roster}

    Rules:
    1. Split into exactly 2 teams
    2. Balance skill levels across teams
    3. Each team should have similar total skill distribution
    4. Consider that each player should get approximately {matches_per_player} matches
    5. Create teams that allow for diverse pairings and avoid repetitive matchups
    6. Every player must get fair playing time: the number of matches of any two players may differ by at most 1
    7. Return only the team assignments in this JSON format:
    {{
      "team1": ["player1_name", "player2_name", ...],
      "team2": ["player3_name", "player4_name", ...]
    }}
    """


def parse_team_response(text, players):
    """Turn the model's JSON reply into two lists of player ids.

    Raises TeamSplitError unless every player lands on exactly one team and
    both teams have at least two players.
    """
    try:
        data = json.loads(_FENCE_RE.sub('', text).strip())
        team1_names = data['team1']
        team2_names = data['team2']
    except (ValueError, KeyError, TypeError) as e:
        raise TeamSplitError(f"Unparseable team split: {e}") from e

    ids_by_name = {p.name: p.id for p in players}
    team_a = [ids_by_name[name] for name in team1_names if name in ids_by_name]
    team_b = [ids_by_name[name] for name in team2_names if name in ids_by_name]

    assigned = team_a + team_b
    if len(assigned) != len(set(assigned)):
        raise TeamSplitError("A player was assigned more than once")
    if set(assigned) != set(ids_by_name.values()):
        raise TeamSplitError("Not every player was assigned to a team")
    if len(team_a) < 2 or len(team_b) < 2:
        raise TeamSplitError("Both teams need at least two players")
    return team_a, team_b


def request_ai_split(players, matches_per_player, api_key, model=DEFAULT_MODEL,
                     timeout=DEFAULT_TIMEOUT_SECONDS):
    if not api_key:
        raise TeamSplitError("No API key configured")
    payload = {'contents': [{'parts': [{'text': build_prompt(players, matches_per_player)}]}]}
    try:
        response = requests.post(GEMINI_URL.format(model=model), params={'key': api_key},
                                 json=payload, timeout=timeout)
        response.raise_for_status()
        text = response.json()['candidates'][0]['content']['parts'][0]['text']
    except requests.RequestException as e:
        raise TeamSplitError(f"AI request failed: {e}") from e
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise TeamSplitError(f"Unexpected AI response: {e}") from e
    return parse_team_response(text, players)


def random_split(players, rng=None):
    """Shuffle the roster; the first half (rounded up) becomes Team A."""
    rng = rng or random.Random()
    shuffled = list(players)
    rng.shuffle(shuffled)
    mid = math.ceil(len(shuffled) / 2)
    return [p.id for p in shuffled[:mid]], [p.id for p in shuffled[mid:]]


def create_balanced_teams(players, matches_per_player=6, api_key=None, model=DEFAULT_MODEL,
                          timeout=DEFAULT_TIMEOUT_SECONDS, rng=None):
    """Return (team_a_ids, team_b_ids), using the AI split when it works."""
    try:
        return request_ai_split(players, matches_per_player, api_key, model=model, timeout=timeout)
    except TeamSplitError as e:
        logger.warning("AI team creation failed, using random split: %s", e)
    return random_split(players, rng)
