"""
Background maintenance for Pigeon Post.

Periodic jobs that run beside request handling.
"""

from pigeonpost.maintenance.sweeper import SessionSweeper

__all__ = ['SessionSweeper']
