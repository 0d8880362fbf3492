SKILL_LEVELS = ('beginner', 'intermediate', 'advanced')


class Player:
    def __init__(self, id, name, skill_level, created_at=None):
        self.id = id
        self.name = name
        self.skill_level = skill_level
        self.created_at = created_at

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            name=data['name'],
            skill_level=data.get('skill_level', 'beginner'),
            created_at=data.get('created_at'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'skill_level': self.skill_level,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name}, skill_level={self.skill_level})"


class Fixture:
    """One doubles match: a pair from Team A against a pair from Team B."""

    def __init__(self, id, team_a, team_b, status='pending', score_a=None, score_b=None,
                 winner=None, played_at=None):
        self.id = id
        self.team_a = list(team_a)
        self.team_b = list(team_b)
        self.status = status
        self.score_a = score_a
        self.score_b = score_b
        self.winner = winner  # 'teamA', 'teamB' or None
        self.played_at = played_at

    @property
    def players(self):
        return self.team_a + self.team_b

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            team_a=data['teamA'],
            team_b=data['teamB'],
            status=data.get('status', 'pending'),
            score_a=data.get('scoreA'),
            score_b=data.get('scoreB'),
            winner=data.get('winner'),
            played_at=data.get('playedAt'),
        )

    def to_dict(self):
        data = {
            'id': self.id,
            'teamA': list(self.team_a),
            'teamB': list(self.team_b),
            'status': self.status,
            'scoreA': self.score_a,
            'scoreB': self.score_b,
            'winner': self.winner,
        }
        if self.played_at is not None:
            data['playedAt'] = self.played_at
        return data

    def __repr__(self):
        return f"Fixture(id={self.id}, team_a={self.team_a}, team_b={self.team_b}, status={self.status})"
