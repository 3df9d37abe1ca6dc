"""Persistence layer - database adapters and statement execution."""

from tablegate.persistence.adapter import PersistenceAdapter
from tablegate.persistence.config import DatabaseConfig, create_adapter

__all__ = ["PersistenceAdapter", "DatabaseConfig", "create_adapter"]
