from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship
import datetime

from app.models.base import Base
from app.models.enums import FlagType, FlagSeverity, FlagSource, FlagStatus, enum_column

class SessionFlag(Base):
    """A governance finding attached to a session."""
    
    __tablename__ = "session_flags"
    __table_args__ = (
        Index("ix_session_flags_session_source", "session_id", "source"),
        Index("ix_session_flags_status_severity", "status", "severity"),
    )
    
    id = Column(Integer, primary_key=True)
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(enum_column(FlagType), nullable=False)
    severity = Column(enum_column(FlagSeverity), nullable=False, default=FlagSeverity.INFO)
    source = Column(enum_column(FlagSource), nullable=False)
    status = Column(enum_column(FlagStatus), nullable=False, default=FlagStatus.PENDING)
    details = Column(Text, nullable=False, default="")
    flag_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc), index=True)
    
    # Relationships
    session = relationship("Session", back_populates="flags")
    
    def __repr__(self):
        return f"<SessionFlag {self.type} (severity={self.severity}, source={self.source})>"
