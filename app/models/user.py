from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
import datetime

from app.models.base import Base
from app.models.enums import UserRole, enum_column

class User(Base):
    """A trainee or supervisor. Provisioned the first time a caller is seen."""
    
    __tablename__ = "users"
    
    id = Column(String, primary_key=True)
    display_name = Column(String, nullable=True)
    role = Column(enum_column(UserRole), nullable=False, default=UserRole.LEARNER)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.datetime.now(datetime.timezone.utc))
    
    # Relationships
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    
    def __repr__(self):
        return f"<User {self.id} ({self.role})>"
