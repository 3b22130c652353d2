from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from collections import defaultdict, deque
import threading
import time

from trivia.errors import RateLimitedError, ValidationError
from trivia.repositories import QuestionBank, SettingsStore


quiz = Blueprint('quiz', __name__)

# Per-client request timestamps for the quiz-taking rate ceiling (runtime-only)
_request_log: dict[str, deque] = defaultdict(deque)
_request_log_lock = threading.Lock()
_last_sweep = 0.0
RATE_WINDOW_SEC = 60.0


def _sweep_request_log(now: float) -> None:
    """Forget clients with no hits inside the window. Caller holds the lock."""
    global _last_sweep
    if now - _last_sweep < RATE_WINDOW_SEC:
        return
    _last_sweep = now
    idle = [key for key, hits in _request_log.items() if not hits or now - hits[-1] >= RATE_WINDOW_SEC]
    for key in idle:
        del _request_log[key]


def _session_manager():
    return current_app.extensions['session_manager']


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


@quiz.before_request
def enforce_rate_limit():
    if request.method == 'OPTIONS' or request.path.startswith('/quiz/admin'):
        return None
    limit = int(current_app.config.get('QUIZ_RATE_LIMIT_PER_MIN', 0) or 0)
    if limit <= 0:
        return None
    key = request.remote_addr or 'unknown'
    now = time.monotonic()
    with _request_log_lock:
        _sweep_request_log(now)
        hits = _request_log[key]
        while hits and now - hits[0] >= RATE_WINDOW_SEC:
            hits.popleft()
        if len(hits) >= limit:
            current_app.logger.info(f"[rate-limit] client={key} limit={limit}/min")
            raise RateLimitedError('Too many requests, please slow down.')
        hits.append(now)
    return None


@quiz.route('/start', methods=['POST'])
def start_quiz():
    data = _json_body()
    payload = _session_manager().start(
        data.get('name'),
        email=data.get('email'),
        organization=data.get('organization'),
    )
    return jsonify(payload)


@quiz.route('/session/<string:session_id>', methods=['GET'])
def get_session(session_id):
    return jsonify(_session_manager().get(session_id))


@quiz.route('/submit', methods=['POST'])
def submit_quiz():
    data = _json_body()
    result = _session_manager().submit(data.get('sessionId'), data.get('answers'))
    return jsonify(result)


# ---- Admin: question bank and settings ----

@quiz.route('/admin/questions', methods=['GET'])
@login_required
def list_questions():
    questions = QuestionBank().list_all()
    config = SettingsStore().get_or_create_default()
    return jsonify({
        'questions': [q.to_admin_dict() for q in questions],
        'config': config.to_dict(),
    })


@quiz.route('/admin/questions', methods=['POST'])
@login_required
def create_question():
    data = _json_body()
    question = QuestionBank().create(
        data.get('prompt'),
        data.get('options'),
        data.get('correctIndex'),
        category=data.get('category'),
        difficulty=data.get('difficulty'),
    )
    return jsonify({'success': True, 'question': question.to_admin_dict()}), 201


@quiz.route('/admin/questions/<string:question_id>', methods=['DELETE'])
@login_required
def delete_question(question_id):
    QuestionBank().delete(question_id)
    return jsonify({'success': True})


@quiz.route('/admin/settings', methods=['PUT'])
@login_required
def update_settings():
    data = _json_body()
    config = SettingsStore().update(
        question_count=data.get('questionCount'),
        duration_ms=data.get('durationMs'),
    )
    return jsonify({'success': True, 'config': config.to_dict()})
