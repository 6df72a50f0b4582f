from flask import request
from mazehunt.models import DeviceAddress, DeviceIdentity, fit


def client_address() -> str:
    """Best-effort caller address, honouring common proxy headers."""
    forwarded = request.headers.get('X-Forwarded-For', '').split(',')[0].strip()
    address = forwarded or request.headers.get('X-Real-IP') or request.remote_addr or 'unknown'
    return fit(DeviceAddress.address, address)


def client_user_agent() -> str:
    return fit(DeviceIdentity.fingerprint_user_agent, request.headers.get('User-Agent', ''))
