"""
API module for Pigeon Post.

Provides REST endpoints for:
- Tracking lookup, creation, editing, and update logs
- Admin sessions and maintenance
"""

from pigeonpost.api.tracking import tracking_bp
from pigeonpost.api.admin import admin_bp

__all__ = ['tracking_bp', 'admin_bp']
