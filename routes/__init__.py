"""
Flask blueprints for the HTTP surface.
"""

from .auth import create_auth_blueprint
from .calendar import create_calendar_blueprint

__all__ = ["create_auth_blueprint", "create_calendar_blueprint"]
