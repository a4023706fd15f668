import base64

import httpx

from arena.services.container import get_services
from arena.services.judge import JudgeGateway
from conftest import harness_output

SOURCE = "def sum_evens(nums):\n    return sum(n for n in nums if n % 2 == 0)\n"


def judge_with(services, handler):
    services.judge = JudgeGateway(services.problems, 'http://judge.test', transport=httpx.MockTransport(handler))


def all_pass(request):
    stdout = harness_output(request, '@@PASS', '@@PASS', '@@PASS', '@@HIDDEN_PASS')
    stdout = base64.b64encode(stdout.encode('utf-8')).decode('ascii')
    return httpx.Response(200, json={'status': {'id': 3, 'description': 'Accepted'}, 'stdout': stdout})


def started_room(services, mode='coding'):
    services.registry.register('sid-a', 'alice')
    services.registry.register('sid-b', 'bob')
    room = services.create_room('alice', 'easy', 300, mode=mode)
    services.membership.join(room.code, 'alice', 'sid-a')
    services.membership.join(room.code, 'bob', 'sid-b')
    return room


def run_payload(**overrides):
    payload = {
        'language_id': 71,
        'lang': 'python',
        'problemId': 'sum-of-evens',
        'source_code': base64.b64encode(SOURCE.encode('utf-8')).decode('ascii'),
    }
    payload.update(overrides)
    return payload


def test_register_login_logout(client):
    res = client.post('/register', json={'username': 'dave', 'password': 'hunter2'})
    assert res.status_code == 201
    assert res.get_json()['user']['username'] == 'dave'
    assert client.get('/check_login').status_code == 200

    assert client.post('/logout').status_code == 200
    assert client.get('/check_login').status_code == 401

    res = client.post('/login', json={'username': 'dave', 'password': 'wrong'})
    assert res.status_code == 401
    res = client.post('/login', json={'username': 'dave', 'password': 'hunter2'})
    assert res.get_json()['success'] is True


def test_register_rejects_duplicates(client):
    res = client.post('/register', json={'username': 'alice', 'password': 'x'})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_create_room_requires_login(client):
    res = client.post('/rooms', json={'difficulty': 'easy', 'durationSec': 300})
    assert res.status_code == 401


def test_create_and_fetch_room(login_as):
    alice = login_as('alice')
    res = alice.post('/rooms', json={'difficulty': 'easy', 'durationSec': 600})
    assert res.status_code == 201
    code = res.get_json()['code']

    room = alice.get(f'/rooms/{code}').get_json()
    assert room['code'] == code
    assert room['durationSec'] == 600
    assert room['state'] == 'waiting'
    assert room['problem']['problemId'] == 'sum-of-evens'
    assert 'harness' not in room['problem']


def test_room_errors_render_as_json(login_as):
    alice = login_as('alice')
    res = alice.post('/rooms', json={'difficulty': 'legendary', 'durationSec': 300})
    assert res.status_code == 400
    assert 'difficulty' in res.get_json()['error']

    res = alice.get('/rooms/NOPE99')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Room not found'}


def test_judge_run_records_score(flask_app, login_as):
    services = get_services()
    judge_with(services, all_pass)
    room = started_room(services)

    res = login_as('alice').post('/judge0/run', json=run_payload())
    assert res.status_code == 200
    body = res.get_json()
    assert body['score'] == 100
    assert body['status'] == 'Accepted'
    assert body['scoreRecorded'] is True
    assert body['roomCode'] == room.code
    assert room.member('alice').score == 100


def test_judge_run_outside_a_room_only_grades(flask_app, login_as):
    judge_with(get_services(), all_pass)
    body = login_as('carol').post('/judge0/run', json=run_payload()).get_json()
    assert body['score'] == 100
    assert body['scoreRecorded'] is False


def test_judge_result_survives_a_closed_room(flask_app, login_as):
    services = get_services()
    judge_with(services, all_pass)
    room = started_room(services)
    services.store.close(room)

    res = login_as('alice').post('/judge0/run', json=run_payload(roomCode=room.code))
    assert res.status_code == 200
    body = res.get_json()
    assert body['score'] == 100
    assert body['status'] == 'Accepted'
    assert body['scoreRecorded'] is False
    assert body['scoreError'] == 'Room not found'


def test_judge_result_survives_an_unknown_room(flask_app, login_as):
    judge_with(get_services(), all_pass)
    res = login_as('alice').post('/judge0/run', json=run_payload(roomCode='NOPE99'))
    assert res.status_code == 200
    assert res.get_json()['scoreRecorded'] is False
    assert res.get_json()['scoreError'] == 'Room not found'


def test_judge_outage_returns_zero_result(flask_app, login_as):
    services = get_services()
    judge_with(services, lambda request: httpx.Response(502))
    room = started_room(services)
    services.engine.record_score(room.code, 'alice', 60)

    res = login_as('alice').post('/judge0/run', json=run_payload(roomCode=room.code))
    assert res.status_code == 200
    body = res.get_json()
    assert body['status'] == 'Judge Unavailable'
    assert body['score'] == 0
    assert body['scoreRecorded'] is False
    assert room.member('alice').score == 60


def test_judge_rejects_bad_source(flask_app, login_as):
    res = login_as('alice').post('/judge0/run', json=run_payload(source_code='***'))
    assert res.status_code == 400


def test_trivia_submit_and_history(flask_app, login_as):
    services = get_services()
    room = started_room(services, mode='trivia')
    alice = login_as('alice')
    bob = login_as('bob')

    res = alice.post('/trivia/submit', json={'roomCode': room.code, 'correctCount': 4, 'totalQuestions': 5})
    assert res.get_json() == {'success': True, 'score': 40}
    res = alice.post('/trivia/submit', json={'roomCode': room.code, 'correctCount': 4, 'totalQuestions': 5})
    assert res.status_code == 409

    bob.post('/trivia/submit', json={'roomCode': room.code, 'correctCount': 2, 'totalQuestions': 5})
    assert room.state == 'finished'

    history = alice.get('/me/matches').get_json()
    assert history['totalPoints'] == 50
    [match] = history['matches']
    assert match['roomCode'] == room.code
    assert match['mode'] == 'trivia'
    assert match['opponentUsername'] == 'bob'
    assert match['result'] == 'win'
    assert match['points'] == 50

    assert bob.get('/me/matches').get_json()['matches'][0]['result'] == 'loss'

    results = alice.get(f'/rooms/{room.code}').get_json()['results']
    assert results['yourScore'] == 50
    assert results['youWon'] is True


def test_create_room_rejects_malformed_bodies(login_as):
    alice = login_as('alice')
    res = alice.post('/rooms', json={'difficulty': 'easy', 'durationSec': 300, 'allowUsername': ['bob']})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'allowUsername must be a string'}

    res = alice.post('/rooms', json=['easy', 300])
    assert res.status_code == 400
