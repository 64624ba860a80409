"""
Engine Services Package
Contains the backend API client and session persistence.
"""

from .api_client import APIClient
from .session_store import SessionStore

__all__ = [
    "APIClient",
    "SessionStore",
]
