from flask import Blueprint, jsonify, request
from mazehunt.api.client import client_address, client_user_agent
from mazehunt.errors import ValidationError
from mazehunt.services import identity as identity_service


identity = Blueprint('identity', __name__)


@identity.route('/identify', methods=['POST'])
def identify_user():
    data = request.get_json(silent=True) or {}
    fingerprint = data.get('fingerprint') or {}
    existing_device_id = data.get('existingDeviceId')
    if not isinstance(fingerprint, dict):
        raise ValidationError('Invalid fingerprint')
    if existing_device_id is not None and not isinstance(existing_device_id, str):
        raise ValidationError('Invalid existingDeviceId')

    result = identity_service.identify(existing_device_id, fingerprint, client_address(), client_user_agent())
    return jsonify(result.to_dict()), (200 if result.is_existing else 201)


@identity.route('/verify', methods=['POST'])
def verify_user():
    data = request.get_json(silent=True) or {}
    device_id = data.get('deviceId')
    if not device_id:
        return jsonify({'error': 'Device ID is required'}), 400

    result = identity_service.verify(device_id, data.get('challenge'), client_address(), client_user_agent())
    return jsonify(result), (200 if result['verified'] else 403)
