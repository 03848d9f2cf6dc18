from .base import Base, TimestampMixin, AuditMixin
from . import domain

__all__ = [
    "Base",
    "TimestampMixin",
    "AuditMixin",
    "domain",
]
