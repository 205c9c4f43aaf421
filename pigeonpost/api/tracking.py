"""
Tracking API endpoints.

Provides endpoints for:
- GET    /api/tracking                          - List all trackings (admin)
- POST   /api/tracking                          - Create a tracking (admin)
- GET    /api/tracking/<number>                 - Public lookup with timeline and updates
- PUT    /api/tracking/<number>                 - Edit a tracking (admin)
- DELETE /api/tracking/<number>                 - Delete a tracking (admin)
- GET    /api/tracking/<number>/updates         - Update log
- POST   /api/tracking/<number>/updates         - Append an update (admin)
- PUT    /api/tracking/<number>/status          - Set status directly (admin)
"""

import logging

from flask import Blueprint, jsonify, request

from pigeonpost.api.auth import current_admin, require_admin
from pigeonpost.errors import ValidationError
from pigeonpost.services.tracking_repository import tracking_repository
from pigeonpost.services.update_log import update_log

logger = logging.getLogger(__name__)

tracking_bp = Blueprint('tracking', __name__, url_prefix='/api/tracking')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        logger.debug(f'Rejected non-object body on {request.method} {request.path}')
        raise ValidationError('JSON body required')
    return data


@tracking_bp.route('', methods=['GET'])
@require_admin
def list_trackings():
    """All trackings with live status and timeline, newest first."""
    views = tracking_repository.list_all()
    return jsonify([v.to_dict() for v in views])


@tracking_bp.route('/<tracking_number>', methods=['GET'])
def get_tracking(tracking_number: str):
    """
    Look up one tracking.

    The message body is withheld until delivery unless the caller is an
    authenticated admin.
    """
    view = tracking_repository.get(tracking_number)
    if current_admin() is None:
        view = view.redacted()
    return jsonify(view.to_dict())


@tracking_bp.route('', methods=['POST'])
@require_admin
def create_tracking():
    """
    Create a tracking.

    Body: {"sender", "recipient", "message", "estimatedDelivery",
           optional "senderAddress", "recipientAddress", "pigeonName"}
    """
    data = _json_body()
    view = tracking_repository.create(
        sender=data.get('sender'),
        recipient=data.get('recipient'),
        message=data.get('message'),
        estimated_delivery=data.get('estimatedDelivery'),
        sender_address=data.get('senderAddress'),
        recipient_address=data.get('recipientAddress'),
        pigeon_name=data.get('pigeonName'),
    )
    return jsonify(view.to_dict()), 201


@tracking_bp.route('/<tracking_number>', methods=['PUT'])
@require_admin
def update_tracking(tracking_number: str):
    """Replace sender, recipient, message, estimatedDelivery and optionally status."""
    data = _json_body()
    view = tracking_repository.update(
        tracking_number,
        sender=data.get('sender'),
        recipient=data.get('recipient'),
        message=data.get('message'),
        estimated_delivery=data.get('estimatedDelivery'),
        status=data.get('status'),
        sender_address=data.get('senderAddress'),
        recipient_address=data.get('recipientAddress'),
        pigeon_name=data.get('pigeonName'),
    )
    return jsonify(view.to_dict())


@tracking_bp.route('/<tracking_number>', methods=['DELETE'])
@require_admin
def delete_tracking(tracking_number: str):
    tracking_repository.delete(tracking_number)
    return jsonify({'message': 'Tracking deleted successfully'})


@tracking_bp.route('/<tracking_number>/updates', methods=['GET'])
def list_updates(tracking_number: str):
    """Update log, oldest first."""
    updates = update_log.list_updates(tracking_number)
    return jsonify([u.to_dict() for u in updates])


@tracking_bp.route('/<tracking_number>/updates', methods=['POST'])
@require_admin
def add_update(tracking_number: str):
    """
    Append an update event.

    Body: {"status", "location", "description", optional "emoji", "pigeonName"}
    """
    data = _json_body()
    event = update_log.append_update(
        tracking_number,
        status=data.get('status'),
        location=data.get('location'),
        description=data.get('description'),
        emoji=data.get('emoji'),
        pigeon_name=data.get('pigeonName'),
        created_by='admin',
    )
    return jsonify(event.to_dict()), 201


@tracking_bp.route('/<tracking_number>/status', methods=['PUT'])
@require_admin
def set_status(tracking_number: str):
    """
    Set status directly.

    Body: {"status", optional "location" + "description", "emoji", "pigeonName"}
    An update event is recorded when both location and description are given.
    """
    data = _json_body()
    view = tracking_repository.set_status(
        tracking_number,
        status=data.get('status'),
        location=data.get('location'),
        description=data.get('description'),
        emoji=data.get('emoji'),
        pigeon_name=data.get('pigeonName'),
    )
    return jsonify(view.to_dict())
