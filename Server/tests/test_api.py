from conftest import register_and_login


def start_mission(client, auth, level='Easy'):
    res = client.post('/api/missions', json={'level': level}, headers=auth.headers)
    assert res.status_code == 201
    return res.get_json()


def test_levels_and_health(client):
    levels = client.get('/api/levels').get_json()['levels']
    assert [level['name'] for level in levels] == ['Easy', 'Medium', 'Hard']

    health = client.get('/api/health').get_json()
    assert health['status'] == 'healthy'
    assert health['auth_available'] is True


def test_auth_endpoints(client):
    res = client.post('/api/auth/register', json={'name': 'Ada', 'email': 'ada@example.com', 'password': 'secret123'})
    assert res.status_code == 201

    res = client.post('/api/auth/login', json={'email': 'ada@example.com', 'password': 'nope-nope'})
    assert res.status_code == 401
    assert res.get_json()['error_code'] == 'auth_failed'

    token = client.post('/api/auth/login', json={'email': 'ada@example.com', 'password': 'secret123'}).get_json()['token']
    headers = {'Authorization': f'Bearer {token}'}
    assert client.get('/api/auth/verify', headers=headers).get_json()['user']['name'] == 'Ada'

    assert client.post('/api/auth/logout', headers=headers).status_code == 200
    assert client.get('/api/auth/verify', headers=headers).status_code == 401


def test_missions_require_sign_in(client):
    res = client.post('/api/missions', json={'level': 'Easy'})
    assert res.status_code == 401


def test_level_preference_used_when_starting(client, auth):
    res = client.put('/api/preferences/level', json={'level': 'Hard'}, headers=auth.headers)
    assert res.get_json()['level']['name'] == 'Hard'
    assert client.get('/api/preferences/level', headers=auth.headers).get_json()['level']['name'] == 'Hard'

    res = client.post('/api/missions', json={}, headers=auth.headers)
    mission = res.get_json()['mission']
    assert mission['level'] == 'Hard'
    assert mission['time_remaining'] == 20


def test_guess_flow(client, auth, scheduler):
    started = start_mission(client, auth)
    mission_id = started['mission_id']
    url = f'/api/missions/{mission_id}/guess'

    res = client.post(url, json={'hearts': 'three', 'carrots': 4}, headers=auth.headers)
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Enter numbers for both the hearts and the carrots.'

    res = client.post(url, json={'hearts': 1, 'carrots': 1}, headers=auth.headers)
    body = res.get_json()
    assert res.status_code == 200
    assert body['evaluation']['score'] == 0
    assert body['mission']['attempts_remaining'] == 39

    res = client.post(url, json={'hearts': '3', 'carrots': '4'}, headers=auth.headers)
    assert res.get_json()['mission']['state'] == 'AWAITING_NEXT_PUZZLE'

    res = client.post(url, json={'hearts': 3, 'carrots': 4}, headers=auth.headers)
    assert res.status_code == 409

    scheduler.advance(1.1)
    state = client.get(f'/api/missions/{mission_id}', headers=auth.headers).get_json()['mission']
    assert state['state'] == 'ACTIVE'
    assert state['puzzles_cleared'] == 1
    assert 'solution' not in state['puzzle']


def test_provider_failure_and_retry(client, auth, puzzle_client):
    puzzle_client.fail_always = True
    res = client.post('/api/missions', json={'level': 'Easy'}, headers=auth.headers)
    assert res.status_code == 503
    body = res.get_json()
    assert body['error_code'] == 'puzzle_unavailable'
    assert body['mission']['state'] == 'LOADING'

    puzzle_client.fail_always = False
    res = client.post(f"/api/missions/{body['mission_id']}/retry", headers=auth.headers)
    assert res.status_code == 200
    assert res.get_json()['mission']['state'] == 'ACTIVE'


def test_other_players_cannot_see_mission(client, auth):
    mission_id = start_mission(client, auth)['mission_id']
    other_token, _ = register_and_login(client, name='Bob', email='bob@example.com')
    headers = {'Authorization': f'Bearer {other_token}'}

    assert client.get(f'/api/missions/{mission_id}', headers=headers).status_code == 404
    assert client.post(f'/api/missions/{mission_id}/guess', json={'hearts': 3, 'carrots': 4},
                       headers=headers).status_code == 404


def test_abandon_mission(client, auth, scheduler, score_collection):
    mission_id = start_mission(client, auth)['mission_id']

    res = client.delete(f'/api/missions/{mission_id}', headers=auth.headers)
    assert res.get_json() == {'success': True, 'abandoned': True}
    scheduler.advance(60)

    assert score_collection.docs == []
    assert client.get(f'/api/missions/{mission_id}', headers=auth.headers).status_code == 404


def test_logout_abandons_running_mission(client, auth, flask_app):
    mission_id = start_mission(client, auth)['mission_id']
    from heart_robot.services.mission_service import get_mission_service
    mission = get_mission_service().get_mission(mission_id)

    client.post('/api/auth/logout', headers=auth.headers)

    assert mission.run.abandoned is True
    assert get_mission_service().get_mission(mission_id) is None


def test_health_counts_only_running_missions(client, auth, scheduler):
    mission_id = start_mission(client, auth)['mission_id']
    assert client.get('/api/health').get_json()['active_missions'] == 1

    for _ in range(5):
        client.post(f'/api/missions/{mission_id}/guess', json={'hearts': 3, 'carrots': 4}, headers=auth.headers)
        scheduler.advance(1.1)

    assert client.get('/api/health').get_json()['active_missions'] == 0


def test_finished_mission_lands_on_scoreboard(client, auth, scheduler, score_collection):
    mission_id = start_mission(client, auth)['mission_id']
    url = f'/api/missions/{mission_id}/guess'
    for _ in range(5):
        client.post(url, json={'hearts': 3, 'carrots': 4}, headers=auth.headers)
        scheduler.advance(1.1)

    state = client.get(f'/api/missions/{mission_id}', headers=auth.headers).get_json()['mission']
    assert state['finished'] is True
    assert state['total_score'] == 500
    assert len(score_collection.docs) == 1

    first = client.get('/api/scoreboard', headers=auth.headers).get_json()
    assert first['final_results']['score'] == 500
    assert first['scores'][0]['player_name'] == 'Ada'

    second = client.get('/api/scoreboard', headers=auth.headers).get_json()
    assert second['final_results'] is None
    assert second['scores'][0]['total_score'] == 500
    assert second['scores'][0]['rank'] == 1

    mine = client.get('/api/scores/me', headers=auth.headers).get_json()
    assert [s['score'] for s in mine['scores']] == [500]


def test_scoreboard_merges_recent_results(client, score_collection):
    score_collection.docs.append({'name': 'A', 'level': 'Easy', 'score': 100, 'attempts': 1})

    res = client.post('/api/scoreboard', json={'recent_results': [{'name': 'A', 'level': 'Easy', 'score': 50}]})
    rows = res.get_json()['scores']
    assert len(rows) == 1
    assert (rows[0]['total_score'], rows[0]['carrots'], rows[0]['hearts']) == (150, 90, 60)


def test_mine_filter_requires_sign_in(client):
    res = client.get('/api/scoreboard?filter=mine')
    assert res.status_code == 401
    assert res.get_json()['error_code'] == 'auth_failed'
