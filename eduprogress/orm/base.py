"""
eduprogress/orm/base.py
Declarative base and the columns every table shares
"""
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BaseModel(Base):
    """Integer key plus row timestamps; `updated_at` doubles as completed_at on ledger rows."""
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Conditional UPDATEs set this explicitly; onupdate covers ORM flushes
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
