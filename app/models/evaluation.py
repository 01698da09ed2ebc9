from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, JSON, Float
from sqlalchemy.orm import relationship
import datetime

from app.models.base import Base

class Evaluation(Base):
    """The scoring result for a session. At most one per session."""
    
    __tablename__ = "evaluations"
    
    id = Column(Integer, primary_key=True)
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    attempt_number = Column(Integer, nullable=False)
    overall_score = Column(Float, nullable=False)
    grade = Column(String, nullable=True)
    
    # Structured feedback
    strengths = Column(JSON, nullable=False, default=list)
    areas_to_improve = Column(JSON, nullable=False, default=list)
    
    # Raw narrative from the scoring model
    raw_response = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc))
    
    # Relationships
    session = relationship("Session", back_populates="evaluation")
    
    def __repr__(self):
        return f"<Evaluation session={self.session_id} score={self.overall_score}>"
