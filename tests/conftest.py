"""
Shared pytest fixtures for badminton tournament tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the randomized sweeps
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Player


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at an empty data directory with the AI service disabled."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()

    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'GEMINI_API_KEY', None)
    return data_dir


@pytest.fixture
def seeded_players(temp_data_dir):
    """Write a ten-player roster to players.yaml and return the rows."""
    levels = ['beginner', 'intermediate', 'advanced']
    rows = [
        {
            'id': f'p{i}',
            'name': f'Player {i}',
            'skill_level': levels[i % 3],
            'created_at': f'2026-01-{i:02d}T10:00:00',
        }
        for i in range(1, 11)
    ]
    (temp_data_dir / 'players.yaml').write_text(
        yaml.dump({'players': rows}, default_flow_style=False))
    return rows


@pytest.fixture
def five_v_five():
    """Two five-player teams."""
    return (['P1', 'P2', 'P3', 'P4', 'P5'], ['P6', 'P7', 'P8', 'P9', 'P10'])


@pytest.fixture
def roster():
    """Six Player objects across all skill levels."""
    return [
        Player(id='a', name='Alice', skill_level='advanced'),
        Player(id='b', name='Bob', skill_level='beginner'),
        Player(id='c', name='Carol', skill_level='intermediate'),
        Player(id='d', name='Dave', skill_level='advanced'),
        Player(id='e', name='Erin', skill_level='beginner'),
        Player(id='f', name='Frank', skill_level='intermediate'),
    ]
