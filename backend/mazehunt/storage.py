"""Storage connectivity helpers: health probe and startup wait loop."""

import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mazehunt import db


def storage_connected() -> bool:
    """Return True when a trivial round-trip to the database succeeds."""
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except SQLAlchemyError:
        db.session.rollback()
        return False


def wait_for_storage(app, interval=None, max_attempts=None, sleep=time.sleep) -> int:
    """Block until the database answers, retrying with a fixed back-off.

    Retries forever unless max_attempts is given. Returns the number of
    attempts it took.
    """
    if interval is None:
        interval = int(app.config.get('STORAGE_RETRY_SEC', 5))
    attempts = 0
    with app.app_context():
        while True:
            attempts += 1
            if storage_connected():
                app.logger.info(f"[storage] connected after {attempts} attempt(s)")
                return attempts
            if max_attempts is not None and attempts >= max_attempts:
                raise RuntimeError(f"storage not reachable after {attempts} attempts")
            app.logger.warning(f"[storage] not reachable, retrying in {interval}s (attempt {attempts})")
            sleep(interval)
