import json
import random

import pytest
import requests

from heart_robot.services.puzzle_service import (
    FallbackPuzzleBank, HeartApiClient, PuzzleService, PuzzleUnavailableError, evaluate_counts
)


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False, chunk_size=1024):
        self.payload = payload
        self.status = status
        self.bad_json = bad_json
        self.chunk_size = chunk_size
        self.closed = False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def iter_content(self, chunk_size=1):
        body = b'not json' if self.bad_json else json.dumps(self.payload).encode()
        for start in range(0, len(body), self.chunk_size):
            yield body[start:start + self.chunk_size]

    def close(self):
        self.closed = True


def test_client_uses_five_second_timeout(monkeypatch):
    seen = {}

    def fake_get(url, timeout=None, stream=False):
        seen['url'] = url
        seen['timeout'] = timeout
        seen['stream'] = stream
        return FakeResponse({'question': 'img.png', 'solution': '4', 'carrots': 2})

    monkeypatch.setattr(requests, 'get', fake_get)
    payload = HeartApiClient('https://heart.test/api').fetch()

    assert seen == {'url': 'https://heart.test/api', 'timeout': (5.0, 5.0), 'stream': True}
    assert payload == {'question': 'img.png', 'solution': 4, 'carrots': 2}


def test_slow_body_is_cut_off_at_total_deadline(monkeypatch):
    response = FakeResponse({'question': 'img.png', 'solution': 4, 'carrots': 2}, chunk_size=4)
    monkeypatch.setattr(requests, 'get', lambda url, timeout=None, stream=False: response)

    # Each read lands well inside the read timeout, but the body keeps dripping
    now = [0.0]

    def clock():
        now[0] += 1.0
        return now[0]

    with pytest.raises(PuzzleUnavailableError, match='timed out'):
        HeartApiClient('https://heart.test/api', timeout=5.0, clock=clock).fetch()
    assert response.closed is True


@pytest.mark.parametrize('response', [
    FakeResponse(status=500),
    FakeResponse(bad_json=True),
    FakeResponse({'solution': 1, 'carrots': 1}),
    FakeResponse({'question': 'img.png', 'carrots': 1}),
    FakeResponse({'question': 'img.png', 'solution': 'many', 'carrots': 1}),
    FakeResponse(['not', 'a', 'dict']),
])
def test_client_rejects_failures_and_malformed_payloads(monkeypatch, response):
    monkeypatch.setattr(requests, 'get', lambda url, timeout=None, stream=False: response)
    with pytest.raises(PuzzleUnavailableError):
        HeartApiClient('https://heart.test/api').fetch()


def test_client_maps_timeout(monkeypatch):
    def fake_get(url, timeout=None, stream=False):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, 'get', fake_get)
    with pytest.raises(PuzzleUnavailableError):
        HeartApiClient('https://heart.test/api', timeout=5).fetch()


def test_request_puzzle_hides_solution(puzzle_service, stores):
    result = puzzle_service.request_puzzle('Easy')

    assert result['success'] is True
    puzzle = result['puzzle']
    assert set(puzzle) == {'session_id', 'question', 'source'}
    assert puzzle['source'] == 'live'
    assert f"game_{puzzle['session_id']}" in stores['kv']


def test_request_puzzle_failure_without_fallback(puzzle_service, puzzle_client):
    puzzle_client.fail_always = True
    result = puzzle_service.request_puzzle('Easy')

    assert result['success'] is False
    assert result['error_code'] == 'puzzle_unavailable'


def test_request_puzzle_uses_fallback_bank(puzzle_client, stores):
    puzzle_client.fail_always = True
    bank = FallbackPuzzleBank([{'question': 'offline.png', 'solution': 1, 'carrots': 2}], random.Random(0))
    service = PuzzleService(puzzle_client, stores['secrets'], bank)

    result = service.request_puzzle('Hard')
    assert result['success'] is True
    assert result['puzzle']['source'] == 'fallback'
    assert result['puzzle']['question'] == 'offline.png'

    check = service.validate_answer(result['puzzle']['session_id'], 1, 2)
    assert check['evaluation'].correct is True


def test_validate_answer_is_single_use(puzzle_service):
    session_id = puzzle_service.request_puzzle('Easy')['puzzle']['session_id']

    first = puzzle_service.validate_answer(session_id, 3, 4)
    assert first['success'] is True
    assert first['evaluation'].score == 100

    second = puzzle_service.validate_answer(session_id, 3, 4)
    assert second['success'] is False
    assert second['error_code'] == 'session_expired'


def test_validate_unknown_session(puzzle_service):
    result = puzzle_service.validate_answer('does-not-exist', 1, 1)
    assert result['error_code'] == 'session_expired'


def test_miss_reissues_puzzle_under_new_id(puzzle_service):
    session_id = puzzle_service.request_puzzle('Easy')['puzzle']['session_id']

    miss = puzzle_service.validate_answer(session_id, 3, 9, reissue_on_miss=True)
    assert miss['evaluation'].score == 50
    retry_id = miss['retry_session_id']
    assert retry_id != session_id

    assert puzzle_service.validate_answer(session_id, 3, 4)['success'] is False
    assert puzzle_service.validate_answer(retry_id, 3, 4)['evaluation'].correct is True


def test_correct_guess_is_not_reissued(puzzle_service):
    session_id = puzzle_service.request_puzzle('Easy')['puzzle']['session_id']
    result = puzzle_service.validate_answer(session_id, 3, 4, reissue_on_miss=True)
    assert 'retry_session_id' not in result


def test_partial_credit_scoring():
    assert evaluate_counts(True, True).score == 100
    assert evaluate_counts(True, False).score == 50
    assert evaluate_counts(False, True).score == 50
    assert evaluate_counts(False, False).score == 0
    assert evaluate_counts(True, False).correct is False
