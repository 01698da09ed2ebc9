from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
import datetime

from app.models.base import Base
from app.models.enums import TurnRole, enum_column

class TranscriptTurn(Base):
    """One utterance within one attempt of a session.
    
    Rows are never updated in place. An attempt's whole turn set is
    replaced atomically by the reconciliation gate.
    """
    
    __tablename__ = "transcript_turns"
    __table_args__ = (
        UniqueConstraint("session_id", "attempt_number", "turn_order", name="uq_transcript_turn_slot"),
        CheckConstraint("turn_order >= 0", name="ck_transcript_turns_turn_order"),
        CheckConstraint("attempt_number >= 1", name="ck_transcript_turns_attempt_number"),
        Index("ix_transcript_turns_session_attempt", "session_id", "attempt_number"),
    )
    
    id = Column(Integer, primary_key=True)
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    attempt_number = Column(Integer, nullable=False)
    turn_order = Column(Integer, nullable=False)
    role = Column(enum_column(TurnRole), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc))
    
    # Relationships
    session = relationship("Session", back_populates="turns")
    
    def __repr__(self):
        return f"<TranscriptTurn session={self.session_id} attempt={self.attempt_number} turn={self.turn_order} role={self.role}>"
