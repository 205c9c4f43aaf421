"""
Pigeon Post Backend Package.

Package and message tracking service built with Flask and SQLAlchemy.

Modules:
    api/          REST endpoints for trackings, update logs, and admin sessions
    models/       SQLAlchemy ORM models (Tracking, TrackingUpdate, AdminSession)
    tracking/     Pure status derivation, timeline generation, tracking numbers
    services/     Repository, update log, session store, and response views
    maintenance/  Background sweeper for expired admin sessions
    clock.py      UTC time helpers shared by every layer
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
