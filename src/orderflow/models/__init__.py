# src/orderflow/models/__init__.py
"""SQLAlchemy models for the order-management service."""

from .user import User

__all__ = ["User"]
