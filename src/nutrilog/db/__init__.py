"""Database layer: connection management, repositories and unit of work."""

from .mongo import MongoDB
from .unit_of_work import UnitOfWork

__all__ = ["MongoDB", "UnitOfWork"]
