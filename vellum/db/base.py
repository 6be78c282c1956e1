"""Declarative base shared by every Vellum model."""

from advanced_alchemy.base import UUIDAuditBase


class Base(UUIDAuditBase):
    """Abstract base providing a UUID primary key and audit timestamps."""

    __abstract__ = True
