"""
Admin API endpoints.

Provides endpoints for:
- POST   /api/admin/login        - Open a session
- POST   /api/admin/logout       - Close a session (always succeeds)
- GET    /api/admin/verify       - Check a bearer token
- GET    /api/admin/stats        - Tracking counts per status
- POST   /api/admin/force-update - Recompute and store every status
- DELETE /api/admin/clear-data   - Delete all trackings
"""

import logging

from flask import Blueprint, g, jsonify, request

from pigeonpost.api.auth import bearer_token, require_admin
from pigeonpost.services.sessions import session_store
from pigeonpost.services.tracking_repository import tracking_repository

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/login', methods=['POST'])
def login():
    """
    Body: {"username": str, "password": str}

    Returns the session token and its expiry; 401 on bad credentials.
    """
    data = request.get_json(silent=True) or {}
    info = session_store.login(data.get('username'), data.get('password'))

    return jsonify({
        'success': True,
        **info.to_dict(),
        'message': 'Login successful',
    })


@admin_bp.route('/logout', methods=['POST'])
def logout():
    """Body: {"sessionId": str}. Falls back to the bearer token."""
    data = request.get_json(silent=True) or {}
    session_store.logout(data.get('sessionId') or bearer_token())
    return jsonify({'message': 'Logged out successfully'})


@admin_bp.route('/verify', methods=['GET'])
def verify():
    info = session_store.authenticate(bearer_token())
    return jsonify({
        'valid': True,
        'username': info.username,
        'expiresAt': info.to_dict()['expiresAt'],
    })


@admin_bp.route('/stats', methods=['GET'])
@require_admin
def stats():
    return jsonify(tracking_repository.status_counts())


@admin_bp.route('/force-update', methods=['POST'])
@require_admin
def force_update():
    logger.info(f'Status refresh requested by {g.admin_session.username}')
    updated = tracking_repository.refresh_all_statuses()
    return jsonify({'message': 'Status update complete', 'updated': updated})


@admin_bp.route('/clear-data', methods=['DELETE'])
@require_admin
def clear_data():
    logger.warning(f'Data wipe requested by {g.admin_session.username}')
    deleted = tracking_repository.clear_all()
    return jsonify({'message': 'All tracking data cleared', 'deletedCount': deleted})
