"""Anonymous device identities.

Identities are issued without registration. The duplicate lookup and the
verification check below only compare client addresses and user agents;
both are heuristics meant to cut down accidental duplicates and gate
unusually high scores, not to authenticate anyone.
"""

from datetime import timedelta
from typing import Any, Dict, NamedTuple, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from mazehunt import db
from mazehunt.errors import InternalError, NotFoundError, ValidationError
from mazehunt.models import DeviceAddress, DeviceIdentity, fit, utcnow

FINGERPRINT_FIELDS = {
    'screenResolution': 'screen_resolution',
    'timezone': 'timezone',
    'language': 'language',
    'platform': 'platform',
}
MAX_CREATE_ATTEMPTS = 5


class IdentifyResult(NamedTuple):
    device_id: str
    display_id: str
    is_verified: bool
    is_existing: bool
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'deviceId': self.device_id,
            'displayId': self.display_id,
            'isVerified': self.is_verified,
            'isExisting': self.is_existing,
        }
        if self.suggestion:
            payload['suggestion'] = self.suggestion
        return payload


def get_identity(device_id: Optional[str]) -> Optional[DeviceIdentity]:
    if not device_id:
        return None
    return DeviceIdentity.query.filter_by(device_id=device_id).first()


def require_identity(device_id: Optional[str], error: str = 'User not found') -> DeviceIdentity:
    if not isinstance(device_id, str):
        raise ValidationError('Invalid deviceId')
    identity = get_identity(device_id)
    if identity is None:
        raise NotFoundError(error)
    return identity


def find_recent_duplicate(client_address: str, client_user_agent: str) -> Optional[DeviceIdentity]:
    """Most recent identity created inside the merge window that shares the
    caller's address or exact user agent."""
    hours = int(current_app.config.get('IDENTITY_MERGE_WINDOW_HOURS', 24))
    cutoff = utcnow() - timedelta(hours=hours)
    client_user_agent = fit(DeviceIdentity.fingerprint_user_agent, client_user_agent)
    matches = [DeviceAddress.address == fit(DeviceAddress.address, client_address)]
    # A missing user agent never matches another missing one
    if client_user_agent:
        matches.append(DeviceIdentity.fingerprint_user_agent == client_user_agent)
    return (
        DeviceIdentity.query.outerjoin(DeviceAddress)
        .filter(DeviceIdentity.created_at >= cutoff)
        .filter(or_(*matches))
        .order_by(DeviceIdentity.created_at.desc(), DeviceIdentity.id.desc())
        .first()
    )


def _create_identity(fingerprint: Dict[str, Any], client_address: str, client_user_agent: str) -> DeviceIdentity:
    attrs = {
        column: fit(getattr(DeviceIdentity, column), str(fingerprint.get(key) or ''))
        for key, column in FINGERPRINT_FIELDS.items()
    }
    user_agent = fit(DeviceIdentity.fingerprint_user_agent, client_user_agent)
    for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
        identity = DeviceIdentity(fingerprint_user_agent=user_agent, is_verified=False, **attrs)
        identity.touch_address(client_address)
        db.session.add(identity)
        try:
            db.session.commit()
            return identity
        except IntegrityError:
            # A concurrent insert took the same display id; draw again
            db.session.rollback()
            current_app.logger.warning(f"[identify] id collision on insert, attempt {attempt}")
    raise InternalError('Failed to identify user', 'Could not allocate a unique display id')


def identify(existing_device_id: Optional[str], fingerprint: Optional[Dict[str, Any]],
             client_address: str, client_user_agent: str) -> IdentifyResult:
    """Resolve the caller to a device identity, creating one if needed.

    - A known existing_device_id is refreshed (address list, last activity)
    - Without one, a recent identity from the same address or user agent is reused
    - Otherwise a new unverified identity is issued
    """
    fingerprint = fingerprint or {}
    now = utcnow()

    if existing_device_id:
        identity = get_identity(existing_device_id)
        if identity:
            identity.touch_address(client_address, now)
            identity.last_active_at = now
            db.session.add(identity)
            db.session.commit()
            current_app.logger.info(f"[identify] existing device={identity.display_id} address={client_address}")
            return IdentifyResult(identity.device_id, identity.display_id, identity.is_verified, True)
    else:
        recent = find_recent_duplicate(client_address, client_user_agent)
        if recent:
            current_app.logger.info(f"[identify] reusing recent device={recent.display_id} address={client_address}")
            return IdentifyResult(
                recent.device_id,
                recent.display_id,
                recent.is_verified,
                True,
                'Found existing user with same device characteristics',
            )

    identity = _create_identity(fingerprint, client_address, client_user_agent)
    current_app.logger.info(f"[identify] created device={identity.display_id} address={client_address}")
    return IdentifyResult(identity.device_id, identity.display_id, identity.is_verified, False)


def verify(device_id: str, challenge: Optional[str], client_address: str, client_user_agent: str) -> Dict[str, Any]:
    """Mark the identity verified when the caller's address or user agent
    matches what was recorded for it. The challenge is currently unused."""
    identity = require_identity(device_id)

    client_user_agent = fit(DeviceIdentity.fingerprint_user_agent, client_user_agent)
    ua_matches = bool(client_user_agent) and identity.fingerprint_user_agent == client_user_agent
    if identity.has_address(client_address) or ua_matches:
        identity.is_verified = True
        identity.last_active_at = utcnow()
        db.session.add(identity)
        db.session.commit()
        current_app.logger.info(f"[verify] device={identity.display_id} verified")
        return {'verified': True, 'message': 'User verified successfully'}

    current_app.logger.info(f"[verify] device={identity.display_id} rejected address={client_address}")
    return {'verified': False, 'message': 'Unable to verify user identity'}
