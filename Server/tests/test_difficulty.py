import json

import pytest

from heart_robot.config import (
    DIFFICULTY_PROFILES, load_fallback_puzzles, resolve_difficulty, validate_difficulty_profiles
)


def test_profiles_match_table():
    easy, medium, hard = (DIFFICULTY_PROFILES[n] for n in ('Easy', 'Medium', 'Hard'))
    assert (easy.time_limit_seconds, easy.attempt_budget, easy.puzzles_required) == (40, 40, 5)
    assert (medium.time_limit_seconds, medium.attempt_budget, medium.puzzles_required) == (30, 30, 7)
    assert (hard.time_limit_seconds, hard.attempt_budget, hard.puzzles_required) == (20, 20, 10)
    assert validate_difficulty_profiles() is True


@pytest.mark.parametrize('name', ['Impossible', '', None, 3, 'easy'])
def test_unknown_levels_resolve_to_easy(name):
    assert resolve_difficulty(name).name == 'Easy'


def test_known_level_resolves_to_itself():
    assert resolve_difficulty('Hard') is DIFFICULTY_PROFILES['Hard']


def test_fallback_bank_disabled_without_file():
    assert load_fallback_puzzles(None) == []
    assert load_fallback_puzzles('') == []


def test_fallback_bank_loads_valid_file(tmp_path):
    path = tmp_path / 'bank.json'
    path.write_text(json.dumps([{'question': 'offline/1.png', 'solution': 2, 'carrots': 5, 'extra': True}]))
    assert load_fallback_puzzles(str(path)) == [{'question': 'offline/1.png', 'solution': 2, 'carrots': 5}]


def test_fallback_bank_rejects_bad_entries(tmp_path):
    path = tmp_path / 'bank.json'
    path.write_text(json.dumps([{'question': 'offline/1.png', 'solution': -1, 'carrots': 5}]))
    with pytest.raises(ValueError):
        load_fallback_puzzles(str(path))

    path.write_text('not json')
    with pytest.raises(ValueError):
        load_fallback_puzzles(str(path))

    with pytest.raises(FileNotFoundError):
        load_fallback_puzzles(str(tmp_path / 'missing.json'))
