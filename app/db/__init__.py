"""
Database package - declarative base and shared mixins
"""

from .base import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
