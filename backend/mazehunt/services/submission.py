from datetime import timedelta

from flask import current_app

from mazehunt import db
from mazehunt.errors import ForbiddenError, RateLimitedError, ValidationError
from mazehunt.models import ScoreRecord, fit, utcnow
from mazehunt.services.identity import require_identity

MAX_SCORE = 999_999_999
MAX_LEVEL = 100
# Counters are stored in 32-bit INTEGER columns
MAX_COUNTER = 2**31 - 1


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_counter(name: str, value) -> int:
    if value is None:
        return 0
    if not _is_int(value) or not 0 <= value <= MAX_COUNTER:
        raise ValidationError(f'Invalid {name} value')
    return value


def submit_score(device_id, score, level, game_time_seconds=0, enemies_defeated=0, treasures_found=0,
                 client_address: str = '', client_user_agent: str = '') -> ScoreRecord:
    """Validate and store one finished game session.

    Checks run in order: required fields, identity lookup, value ranges,
    duplicate suppression (same device and score inside the window), then
    the cap on scores from unverified identities.
    """
    if not device_id or score is None or level is None:
        raise ValidationError('Missing required fields', 'required: deviceId, score, level')

    identity = require_identity(device_id, 'User not found. Please register first.')

    if not _is_int(score) or not 0 <= score <= MAX_SCORE:
        raise ValidationError('Invalid score value')
    if not _is_int(level) or not 1 <= level <= MAX_LEVEL:
        raise ValidationError('Invalid level value')
    game_time_seconds = _check_counter('gameTime', game_time_seconds)
    enemies_defeated = _check_counter('enemiesDefeated', enemies_defeated)
    treasures_found = _check_counter('treasuresFound', treasures_found)

    cfg = current_app.config
    now = utcnow()
    window = int(cfg.get('DUPLICATE_WINDOW_SEC', 60))
    duplicate = ScoreRecord.query.filter(
        ScoreRecord.device_id == device_id,
        ScoreRecord.score == score,
        ScoreRecord.created_at >= now - timedelta(seconds=window),
    ).first()
    if duplicate:
        current_app.logger.info(f"[score] duplicate device={identity.display_id} score={score}")
        raise RateLimitedError('Duplicate submission detected. Please wait before submitting again.')

    cap = int(cfg.get('UNVERIFIED_SCORE_CAP', 100000))
    if not identity.is_verified and score > cap:
        current_app.logger.info(f"[score] unverified cap device={identity.display_id} score={score}")
        raise ForbiddenError('High scores require user verification. Please verify your account first.')

    record = ScoreRecord(
        device_id=identity.device_id,
        display_id=identity.display_id,
        score=score,
        level=level,
        game_time_seconds=game_time_seconds,
        enemies_defeated=enemies_defeated,
        treasures_found=treasures_found,
        is_verified=identity.is_verified,
        submission_user_agent=fit(ScoreRecord.submission_user_agent, client_user_agent),
        submission_address=fit(ScoreRecord.submission_address, client_address),
        submitted_at=now,
        created_at=now,
    )
    db.session.add(record)
    db.session.commit()

    # Separate write; a failure here leaves the stored score in place
    identity.last_active_at = utcnow()
    db.session.add(identity)
    db.session.commit()

    status = 'VERIFIED' if record.is_verified else 'UNVERIFIED'
    current_app.logger.info(f"[score] saved device={record.display_id} score={score} level={level} [{status}]")
    return record
