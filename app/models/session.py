from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
import datetime
import uuid

from app.models.base import Base
from app.models.enums import Modality, SessionStatus, enum_column

class Session(Base):
    """One simulated training conversation.
    
    ``status`` and ``current_attempt`` are only changed through the
    lifecycle manager's conditional updates. ``transcript_revision`` is
    bumped by every accepted or attempted transcript replace and doubles as
    the per-session write lock for the reconciliation gate.
    ``analysis_claimed_at`` is set by the one analysis run allowed to
    proceed and cleared again if that run fails.
    """
    
    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint("current_attempt >= 1", name="ck_sessions_current_attempt_positive"),
    )
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    scenario_id = Column(String, ForeignKey("scenarios.id", ondelete="CASCADE"), nullable=True, index=True)
    modality = Column(enum_column(Modality), nullable=False)
    status = Column(enum_column(SessionStatus), nullable=False, default=SessionStatus.ACTIVE, index=True)
    current_attempt = Column(Integer, nullable=False, default=1)
    transcript_revision = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc))
    ended_at = Column(DateTime, nullable=True)
    analysis_claimed_at = Column(DateTime, nullable=True)
    
    # Relationships
    user = relationship("User", back_populates="sessions")
    scenario = relationship("Scenario", back_populates="sessions")
    turns = relationship("TranscriptTurn", back_populates="session", cascade="all, delete-orphan", passive_deletes=True)
    evaluation = relationship("Evaluation", back_populates="session", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    flags = relationship("SessionFlag", back_populates="session", cascade="all, delete-orphan", passive_deletes=True)
    
    def __repr__(self):
        return f"<Session {self.id} status={self.status} attempt={self.current_attempt}>"
