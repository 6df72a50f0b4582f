import time
from flask import Blueprint, jsonify, current_app
from mazehunt.models import isoformat, utcnow
from mazehunt.storage import storage_connected

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Maze Hunter leaderboard server!'})


@main.route('/api/health')
def health():
    cfg = current_app.config
    return jsonify({
        'status': 'ok',
        'timestamp': isoformat(utcnow()),
        'uptime': round(time.time() - cfg.get('STARTED_AT', time.time()), 3),
        'storageConnected': storage_connected(),
        'environment': cfg.get('ENVIRONMENT', 'development'),
    })
