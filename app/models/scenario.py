from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship
import datetime

from app.models.base import Base

class Scenario(Base):
    """Read-only scenario context used to enrich scoring and analysis.
    
    Scenarios are authored elsewhere; this service only looks them up.
    """
    
    __tablename__ = "scenarios"
    
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    prompt = Column(Text, nullable=True)  # caller persona the agent plays
    evaluator_context = Column(Text, nullable=True)  # extra grading guidance
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc))
    
    # Relationships
    sessions = relationship("Session", back_populates="scenario", cascade="all, delete-orphan", passive_deletes=True)
    
    def __repr__(self):
        return f"<Scenario {self.id} {self.title!r}>"
