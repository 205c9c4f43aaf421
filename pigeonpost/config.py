"""
Configuration management for Pigeon Post.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv
from werkzeug.security import generate_password_hash

load_dotenv()


def _parse_origins(value: str) -> Tuple[str, ...]:
    """Parse a comma-separated origin list, always allowing the local dev UI."""
    origins = [o.strip() for o in value.split(',') if o.strip()]
    if 'http://localhost:5173' not in origins:
        origins.append('http://localhost:5173')
    return tuple(origins)


def _admin_password_hash() -> str:
    """
    Resolve the admin password hash.

    ADMIN_PASSWORD_HASH wins when set. Otherwise ADMIN_PASSWORD is hashed
    here so the plain value never leaves this function.
    """
    configured = os.getenv('ADMIN_PASSWORD_HASH')
    if configured:
        return configured
    return generate_password_hash(os.getenv('ADMIN_PASSWORD', 'admin123'))


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///pigeonpost.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class AdminConfig:
    """Single shared admin credential."""
    username: str = os.getenv('ADMIN_USERNAME', 'admin')
    password_hash: str = field(default_factory=_admin_password_hash, repr=False)


@dataclass(frozen=True)
class SessionConfig:
    """Admin session lifetime and cleanup."""
    ttl_hours: int = int(os.getenv('SESSION_TTL_HOURS', '24'))
    sweep_interval_seconds: int = int(os.getenv('SESSION_SWEEP_INTERVAL_SECONDS', '3600'))


@dataclass(frozen=True)
class TrackingConfig:
    """Tracking record defaults."""
    number_prefix: str = os.getenv('TRACKING_NUMBER_PREFIX', 'PPS')
    default_sender_address: str = 'Pigeon Post Service'
    default_recipient_address: str = 'Delivery Location'
    default_emoji: str = '📦'


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    admin: AdminConfig
    sessions: SessionConfig
    tracking: TrackingConfig

    # Allowed browser origins for /api/*
    cors_origins: Tuple[str, ...]

    # Flask settings
    secret_key: str
    debug: bool
    port: int

    # Optional public URL of the deployed frontend, for log output only
    frontend_url: Optional[str] = None


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    frontend_url = os.getenv('FRONTEND_URL', 'http://localhost:5173')
    return AppConfig(
        database=DatabaseConfig(),
        admin=AdminConfig(),
        sessions=SessionConfig(),
        tracking=TrackingConfig(),
        cors_origins=_parse_origins(frontend_url),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        port=int(os.getenv('PORT', '3001')),
        frontend_url=frontend_url,
    )


# Singleton instance
config = load_config()
