from sqlalchemy import BigInteger, Column, Integer, String, Text, DateTime
from database import Base
from datetime import datetime

class Expense(Base):
    """A cost the group paid on its own, outside any single entry."""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    description = Column(Text, nullable=False, default="")
    amount = Column(BigInteger, nullable=False, default=0)  # minor units
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
