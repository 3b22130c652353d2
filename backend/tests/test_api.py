import time

from trivia import db
from trivia.models import QuizSession, Submission, now_ms


def _start(client, name='Alice', **extra):
    return client.post('/quiz/start', json={'name': name, **extra})


def _answers_for(session_payload, correct_by_id):
    return [
        {'questionId': q['id'], 'optionIndex': correct_by_id[q['id']]}
        for q in session_payload['questions']
    ]


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}
    assert client.get('/').status_code == 200


def test_start_and_fetch_session(client, make_questions):
    make_questions(5)
    res = _start(client, name=' Alice ', email='alice@example.com')
    assert res.status_code == 200
    started = res.get_json()
    assert started['player']['name'] == 'Alice'
    assert len(started['questions']) == 3
    assert started['expiresAt'] - started['startedAt'] == started['durationMs']
    assert all('correctIndex' not in q for q in started['questions'])

    res = client.get(f"/quiz/session/{started['sessionId']}")
    assert res.status_code == 200
    view = res.get_json()
    assert [q['id'] for q in view['questions']] == [q['id'] for q in started['questions']]
    assert view['serverTime'] >= view['startedAt']


def test_start_validation_errors(client, make_questions):
    res = client.post('/quiz/start', json={'name': '   '})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Name is required.'

    res = client.post('/quiz/start', json=['not', 'an', 'object'])
    assert res.status_code == 400

    make_questions(1)
    res = _start(client)
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Not enough questions available.'


def test_unknown_session_is_404(client):
    assert client.get('/quiz/session/nope').status_code == 404
    res = client.post('/quiz/submit', json={'sessionId': 'nope', 'answers': []})
    assert res.status_code == 404


def test_submit_requires_session_id(client):
    res = client.post('/quiz/submit', json={'answers': []})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Session ID is required.'


def test_full_flow_submit_then_conflict(client, make_questions):
    questions = make_questions(3, correct_index=2)
    correct = {str(q.id): q.correct_index for q in questions}
    started = _start(client, name='Bob').get_json()

    res = client.post('/quiz/submit', json={
        'sessionId': started['sessionId'],
        'answers': _answers_for(started, correct),
    })
    assert res.status_code == 200
    result = res.get_json()
    assert result['score'] == 3
    assert result['totalQuestions'] == 3
    assert 0 <= result['timeTakenMs'] <= started['durationMs']
    assert result['leaderboard'][0]['playerName'] == 'Bob'
    assert result['submissionId']

    again = client.post('/quiz/submit', json={'sessionId': started['sessionId'], 'answers': []})
    assert again.status_code == 409
    assert client.get(f"/quiz/session/{started['sessionId']}").status_code == 409
    assert Submission.query.count() == 1

    board = client.get('/leaderboard').get_json()['entries']
    assert [e['sessionId'] for e in board] == [started['sessionId']]


def test_expired_session_is_gone(client, make_questions):
    make_questions(3)
    started = _start(client).get_json()
    session = QuizSession.query.filter_by(session_id=started['sessionId']).one()
    # Move the attempt well past its deadline and the grace window
    session.started_at = now_ms() - 10 * session.duration_ms
    session.expires_at = session.started_at + session.duration_ms
    db.session.commit()

    assert client.get(f"/quiz/session/{started['sessionId']}").status_code == 410
    res = client.post('/quiz/submit', json={'sessionId': started['sessionId'], 'answers': []})
    assert res.status_code == 410
    assert res.get_json()['error'] == 'Session expired.'
    assert Submission.query.count() == 0


def test_late_submit_within_grace_is_clamped(client, make_questions):
    make_questions(3)
    started = _start(client).get_json()
    session = QuizSession.query.filter_by(session_id=started['sessionId']).one()
    # Deadline passed one second ago; grace is five seconds
    session.started_at = now_ms() - session.duration_ms - 1000
    session.expires_at = session.started_at + session.duration_ms
    db.session.commit()

    assert client.get(f"/quiz/session/{started['sessionId']}").status_code == 410
    res = client.post('/quiz/submit', json={'sessionId': started['sessionId'], 'answers': []})
    assert res.status_code == 200
    assert res.get_json()['timeTakenMs'] == session.duration_ms


def test_oversized_body_is_rejected(client):
    res = client.post('/quiz/start', data='x' * (65 * 1024), content_type='application/json')
    assert res.status_code == 413
    assert 'error' in res.get_json()


def test_unknown_route_is_json_404(client):
    res = client.get('/does-not-exist')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_quiz_rate_limit(flask_app, make_questions):
    flask_app.config['QUIZ_RATE_LIMIT_PER_MIN'] = 2
    limited = flask_app.test_client()
    limited.environ_base['REMOTE_ADDR'] = '203.0.113.77'
    assert limited.get('/quiz/session/a').status_code == 404
    assert limited.get('/quiz/session/b').status_code == 404
    res = limited.get('/quiz/session/c')
    assert res.status_code == 429
    # Leaderboard reads are not throttled
    assert limited.get('/leaderboard').status_code == 200


def test_db_reset_command_seeds_playable_bank(flask_app, client):
    from trivia.seed import STARTER_QUESTIONS
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['db-reset'])
    assert result.exit_code == 0, result.output
    assert f'{len(STARTER_QUESTIONS)} questions' in result.output

    started = _start(client, name='Seeded').get_json()
    assert len(started['questions']) == 3
    assert {q['category'] for q in started['questions']} == {'Finance'}


def test_rate_limit_forgets_idle_clients(flask_app, monkeypatch):
    from trivia.api import quiz as quiz_api
    flask_app.config['QUIZ_RATE_LIMIT_PER_MIN'] = 5
    long_ago = time.monotonic() - 2 * quiz_api.RATE_WINDOW_SEC
    with quiz_api._request_log_lock:
        for n in range(50):
            quiz_api._request_log[f'198.51.100.{n}'].append(long_ago)
    monkeypatch.setattr(quiz_api, '_last_sweep', long_ago)

    fresh = flask_app.test_client()
    fresh.environ_base['REMOTE_ADDR'] = '192.0.2.10'
    assert fresh.get('/quiz/session/x').status_code == 404
    assert not [key for key in quiz_api._request_log if key.startswith('198.51.100.')]
    assert len(quiz_api._request_log['192.0.2.10']) == 1
