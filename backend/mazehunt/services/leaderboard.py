import math
from typing import Any, Dict

from sqlalchemy import func

from mazehunt import db
from mazehunt.errors import ValidationError
from mazehunt.models import DeviceIdentity, ScoreRecord, isoformat
from mazehunt.services.identity import require_identity

MAX_PAGE_SIZE = 100
# OFFSET is a signed 64-bit value in both PostgreSQL and SQLite
MAX_OFFSET = 2**63 - 1


def get_leaderboard(page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Ranked page of scores: highest first, newest first on ties.

    Each entry keeps the verification flag frozen at submission time
    (isVerified) next to the identity's current one (isUserVerified).
    """
    if page < 1:
        raise ValidationError('Invalid page value')
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError('Invalid limit value')
    if (page - 1) * limit > MAX_OFFSET:
        raise ValidationError('Invalid page value', 'Page is beyond the end of the leaderboard')

    total = ScoreRecord.query.count()
    rows = (
        db.session.query(ScoreRecord, DeviceIdentity.is_verified)
        .outerjoin(DeviceIdentity, DeviceIdentity.device_id == ScoreRecord.device_id)
        .order_by(ScoreRecord.score.desc(), ScoreRecord.created_at.desc(), ScoreRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    scores = []
    for record, user_verified in rows:
        entry = record.to_dict()
        entry['isUserVerified'] = user_verified
        scores.append(entry)

    return {
        'scores': scores,
        'pagination': {
            'current': page,
            'total': math.ceil(total / limit),
            'count': len(scores),
            'totalScores': total,
        },
    }


def get_player_stats(device_id: str) -> Dict[str, Any]:
    identity = require_identity(device_id, 'Player not found')

    row = (
        db.session.query(
            func.count(ScoreRecord.id),
            func.max(ScoreRecord.score),
            func.avg(ScoreRecord.score),
            func.max(ScoreRecord.level),
            func.sum(ScoreRecord.enemies_defeated),
            func.sum(ScoreRecord.treasures_found),
            func.sum(ScoreRecord.game_time_seconds),
            func.min(ScoreRecord.created_at),
            func.max(ScoreRecord.created_at),
        )
        .filter(ScoreRecord.device_id == identity.device_id)
        .one()
    )
    total_games = int(row[0] or 0)

    if total_games == 0:
        return {
            'deviceId': identity.device_id,
            'displayId': identity.display_id,
            'isVerified': identity.is_verified,
            'totalGames': 0,
            'message': 'No games played yet',
        }

    return {
        'deviceId': identity.device_id,
        'displayId': identity.display_id,
        'totalGames': total_games,
        'bestScore': int(row[1]),
        'averageScore': float(row[2]),
        'highestLevel': int(row[3]),
        'totalEnemiesDefeated': int(row[4] or 0),
        'totalTreasuresFound': int(row[5] or 0),
        'totalGameTime': int(row[6] or 0),
        'firstPlayed': isoformat(row[7]),
        'lastPlayed': isoformat(row[8]),
        'isVerified': identity.is_verified,
        'accountCreated': isoformat(identity.created_at),
        'lastActive': isoformat(identity.last_active_at),
    }
