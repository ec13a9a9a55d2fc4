from sqlalchemy import BigInteger, Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime

class Entry(Base):
    """One group event or expense: a titled amount at a point in time."""
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    time = Column(String(32), nullable=False, index=True)  # datetime-local value, e.g. 2026-01-01T20:00
    description = Column(Text, nullable=False, default="")
    amount = Column(BigInteger, nullable=False, default=0)  # minor units
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    participants = relationship("Participant", back_populates="entry", cascade="all, delete-orphan")
