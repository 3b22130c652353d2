from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from trivia.services.quiz import clamp_limit, list_entries, stream_frames


leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('', methods=['GET'])
@leaderboard.route('/', methods=['GET'])
def get_leaderboard():
    cfg = current_app.config
    limit = clamp_limit(
        request.args.get('limit'),
        default=int(cfg.get('LEADERBOARD_LIMIT', 20)),
        maximum=int(cfg.get('LEADERBOARD_MAX_LIMIT', 100)),
    )
    return jsonify({'entries': list_entries(limit)})


@leaderboard.route('/stream', methods=['GET'])
def stream_leaderboard():
    cfg = current_app.config
    frames = stream_frames(
        current_app.extensions['leaderboard_broadcaster'],
        limit=int(cfg.get('LEADERBOARD_LIMIT', 20)),
        keepalive=float(cfg.get('STREAM_KEEPALIVE_SEC', 15)),
    )
    return Response(
        stream_with_context(frames),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
