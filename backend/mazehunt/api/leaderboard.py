from flask import Blueprint, jsonify, request, current_app
from mazehunt import socketio
from mazehunt.api.client import client_address, client_user_agent
from mazehunt.services.leaderboard import get_leaderboard, get_player_stats
from mazehunt.services.submission import submit_score


leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('/leaderboard', methods=['GET'])
def list_scores():
    cfg = current_app.config
    default_limit = int(cfg.get('LEADERBOARD_DEFAULT_LIMIT', 10))
    # Zero or unparsable values fall back to the defaults
    page = request.args.get('page', type=int) or 1
    limit = request.args.get('limit', type=int) or default_limit
    limit = min(limit, int(cfg.get('LEADERBOARD_MAX_LIMIT', 100)))
    return jsonify(get_leaderboard(page, limit))


@leaderboard.route('/leaderboard', methods=['POST'])
def create_score():
    data = request.get_json(silent=True) or {}
    record = submit_score(
        data.get('deviceId'),
        data.get('score'),
        data.get('level'),
        game_time_seconds=data.get('gameTime', 0),
        enemies_defeated=data.get('enemiesDefeated', 0),
        treasures_found=data.get('treasuresFound', 0),
        client_address=client_address(),
        client_user_agent=client_user_agent(),
    )
    payload = record.to_dict()

    # Push the new entry to live leaderboard subscribers
    socketio.emit('leaderboard_update', {'score': payload}, to='leaderboard', namespace='/ws')
    return jsonify(payload), 201


@leaderboard.route('/player/<string:device_id>/stats', methods=['GET'])
def player_stats(device_id):
    return jsonify(get_player_stats(device_id))
