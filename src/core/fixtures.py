"""
Doubles fixture generation between two teams.

Every fixture puts a pair from Team A against a pair from Team B. The scheduler
never repeats a pair-vs-pair combination, never lets a player go above
``target + 1`` matches, and tries to keep every player's match count within
one of everyone else's. It works in passes:

1. Greedy fill: commit candidates involving the players furthest behind.
2. Backfill: give under-served players one more fixture each.
3. Balance repair: add fixtures for the players at the minimum count until
   the spread is at most one or nothing more can be added.
"""
import logging
import random
import uuid
from itertools import combinations

from core.models import Fixture

logger = logging.getLogger(__name__)

MAX_BALANCING_ATTEMPTS = 100


def create_pairs(team):
    """Return every unordered pair of players in a team, in roster order."""
    return list(combinations(team, 2))


def combination_key(pair_a, pair_b):
    """Identify a pair-vs-pair match-up regardless of the order inside each pair."""
    return (frozenset(pair_a), frozenset(pair_b))


def participation_counts(fixtures, players=()):
    counts = {player: 0 for player in players}
    for fixture in fixtures:
        for player in fixture.players:
            counts[player] = counts.get(player, 0) + 1
    return counts


class FixtureScheduler:
    def __init__(self, team_a, team_b, matches_per_player=6, rng=None, id_factory=None):
        self.team_a = list(team_a)
        self.team_b = list(team_b)
        overlap = set(self.team_a) & set(self.team_b)
        if overlap:
            raise ValueError(f"Players cannot be on both teams: {sorted(map(str, overlap))}")
        for team in (self.team_a, self.team_b):
            if len(set(team)) != len(team):
                raise ValueError(f"Duplicate players in team: {team}")

        self.matches_per_player = matches_per_player
        self.rng = rng if rng is not None else random.Random()
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

        roster_size = len(self.team_a) + len(self.team_b)
        self.target = min(matches_per_player, 2 * roster_size)
        self.hard_cap = self.target + 1
        self.pairs_a = create_pairs(self.team_a)
        self.pairs_b = create_pairs(self.team_b)
        self.max_total_fixtures = min(len(self.pairs_a) * len(self.pairs_b),
                                      self.target * roster_size / 2)

        self.match_count = {player: 0 for player in self.team_a + self.team_b}
        self.used_combinations = set()
        self.fixtures = []
        self.balancing_attempts = 0
        self._team_a_members = set(self.team_a)

    def generate(self):
        if self.fixtures:
            return self.fixtures
        if self.matches_per_player < 1 or not self.pairs_a or not self.pairs_b:
            logger.info("Nothing to schedule: team sizes %d/%d, target %s",
                        len(self.team_a), len(self.team_b), self.matches_per_player)
            return self.fixtures

        self._fill_balanced()
        self._backfill()
        self._repair_balance()

        low, high = self._spread()
        logger.info("Generated %d fixtures (target %d, cap %d): min %d, max %d after %d balancing attempts",
                    len(self.fixtures), self.target, self.hard_cap, low, high, self.balancing_attempts)
        for player in self.team_a + self.team_b:
            logger.debug("Player %s: %d matches", player, self.match_count[player])
        return self.fixtures

    def _spread(self):
        if not self.match_count:
            return 0, 0
        counts = self.match_count.values()
        return min(counts), max(counts)

    def _below(self, players, limit):
        return all(self.match_count[player] < limit for player in players)

    def _priority(self, candidate):
        pair_a, pair_b, _key = candidate
        counts = [self.match_count[player] for player in pair_a + pair_b]
        return (min(counts), sum(counts))

    def _commit(self, pair_a, pair_b, key=None):
        fixture = Fixture(id=self.id_factory(), team_a=pair_a, team_b=pair_b)
        self.fixtures.append(fixture)
        for player in fixture.players:
            self.match_count[player] += 1
        self.used_combinations.add(key if key is not None else combination_key(pair_a, pair_b))
        logger.debug("Committed %s vs %s", pair_a, pair_b)
        return fixture

    def _fill_balanced(self):
        candidates = [(pair_a, pair_b, combination_key(pair_a, pair_b))
                      for pair_a in self.pairs_a for pair_b in self.pairs_b]
        self.rng.shuffle(candidates)

        committed = 0
        while candidates and committed < self.max_total_fixtures:
            # list.sort is stable: equal priorities keep their previous order
            candidates.sort(key=self._priority)
            for index, (pair_a, pair_b, key) in enumerate(candidates):
                if key in self.used_combinations or not self._below(pair_a + pair_b, self.hard_cap):
                    continue
                self._commit(pair_a, pair_b, key)
                committed += 1
                # Skipped candidates can never become eligible again
                del candidates[:index + 1]
                break
            else:
                logger.debug("No more fixtures fit under the cap of %d", self.hard_cap)
                break

    def _backfill(self):
        threshold = max(1, self.target - 1)
        under_served = [player for player, count in self.match_count.items() if count < threshold]
        if not under_served:
            return
        logger.info("Ensuring minimum participation for %d players", len(under_served))

        for player in under_served:
            in_team_a = player in self._team_a_members
            own_pairs, opposing_pairs = ((self.pairs_a, self.pairs_b) if in_team_a
                                         else (self.pairs_b, self.pairs_a))
            own_pair = next((pair for pair in own_pairs
                             if player in pair and self._below(pair, self.hard_cap)), None)
            if own_pair is None:
                continue

            eligible = []
            for opposing in opposing_pairs:
                pair_a, pair_b = (own_pair, opposing) if in_team_a else (opposing, own_pair)
                if (self._below(opposing, self.hard_cap)
                        and combination_key(pair_a, pair_b) not in self.used_combinations):
                    eligible.append((pair_a, pair_b))
            if eligible:
                pair_a, pair_b = self.rng.choice(eligible)
                self._commit(pair_a, pair_b)

    def _repair_balance(self):
        low, high = self._spread()
        while high - low > 1 and self.balancing_attempts < MAX_BALANCING_ATTEMPTS:
            logger.debug("Balancing: min %d, max %d", low, high)
            if not self._add_balancing_fixture(low, high):
                logger.info("Could not find any fixture to narrow the spread of %d", high - low)
                break
            self.balancing_attempts += 1
            low, high = self._spread()

    def _add_balancing_fixture(self, low, high):
        """Commit one fixture for a player at the minimum count. Returns False if none fits."""
        lagging = [player for player, count in self.match_count.items() if count == low]
        for player in lagging:
            in_team_a = player in self._team_a_members
            own_team, opposing_team = ((self.team_a, self.team_b) if in_team_a
                                       else (self.team_b, self.team_a))
            partners = sorted((p for p in own_team if p != player), key=self.match_count.get)
            for partner in partners:
                pair = (player, partner)
                if self.match_count[partner] >= high or not self._below(pair, self.hard_cap):
                    continue

                # Current max, not the cap, bounds opponents here; the cap still applies
                options = [opposing for opposing in combinations(opposing_team, 2)
                           if all(self.match_count[p] <= high for p in opposing)
                           and self._below(opposing, self.hard_cap)]
                options.sort(key=lambda opposing: sum(self.match_count[p] for p in opposing))

                for opposing in options:
                    pair_a, pair_b = (pair, opposing) if in_team_a else (opposing, pair)
                    key = combination_key(pair_a, pair_b)
                    if key not in self.used_combinations:
                        self._commit(pair_a, pair_b, key)
                        logger.debug("Balancing fixture for %s, now at %d",
                                     player, self.match_count[player])
                        return True
        return False


def generate_fixtures(team_a, team_b, matches_per_player=6, seed=None, rng=None, id_factory=None):
    """Build a balanced doubles schedule for two teams.

    Pass ``seed`` (or a ``random.Random`` as ``rng``) for a reproducible schedule.
    Returns an empty list when either team has fewer than two players or the
    target is below one.
    """
    if rng is None:
        rng = random.Random(seed)
    scheduler = FixtureScheduler(team_a, team_b, matches_per_player, rng=rng, id_factory=id_factory)
    return scheduler.generate()
