from sqlalchemy import BigInteger, Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime


class Participant(Base):
    """A payee's share of an entry: paid-out amount plus reimbursed expense."""
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    entry_id = Column(Integer, ForeignKey('entries.id', ondelete='CASCADE'), nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey('payees.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False, default=0)
    expense = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    entry = relationship("Entry", back_populates="participants")
    payee = relationship("Payee", back_populates="participations")

    __table_args__ = (
        UniqueConstraint('entry_id', 'payee_id', name='uq_entry_payee'),
    )
