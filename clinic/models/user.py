from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from clinic.db.base import Base
from clinic.models.enums import UserRole
from clinic.utils.timezone import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    role = Column(String, nullable=False, default=UserRole.CLIENT.value)
    is_active = Column(Boolean, default=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    appointments = relationship("Appointment", foreign_keys="Appointment.client_id", back_populates="client")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
