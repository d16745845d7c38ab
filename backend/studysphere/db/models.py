# studysphere/db/models.py
from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.sql import func

from studysphere.core.database import Base


class StorageEntryModel(Base):
    """One key of the chat store, holding a JSON document."""
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
