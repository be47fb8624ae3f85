"""Declarative base shared by all LeaseSentinel models."""

from advanced_alchemy.base import UUIDAuditBase


class Base(UUIDAuditBase):
    """Base model with UUID primary key and created_at/updated_at columns."""

    __abstract__ = True
