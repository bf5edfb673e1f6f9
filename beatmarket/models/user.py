"""User model."""
from sqlalchemy import Column, String, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from beatmarket.db.base import Base
from .base import TimestampMixin
from .enums import UserRole


class User(Base, TimestampMixin):
    """Registered customer or administrator."""

    __tablename__ = 'users'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole, name="userrole"), default=UserRole.user, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Order ids (as strings) in purchase order
    purchases = Column(JSON, default=list, nullable=False)

    orders = relationship('Order', back_populates='user')
    downloads = relationship('Download', back_populates='user')

    def __repr__(self) -> str:
        return f'<User(id={self.id}, email={self.email}, role={self.role})>'
