"""Infra layer utilities (storage)."""

from .storage import ContentPolicyError, SQLiteManager, table_name_for

__all__ = ["ContentPolicyError", "SQLiteManager", "table_name_for"]
