from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, func, Enum as SAEnum, Integer
from app.db import Base

class UserRole(str, Enum):
    user = "user"      # trainee
    admin = "admin"    # coach

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        nullable=False,
        server_default=UserRole.user.value,
    )
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    programs = relationship(
        "ClientProgram", back_populates="user",
        foreign_keys="ClientProgram.assigned_to", cascade="all, delete-orphan",
    )
    sessions = relationship("WorkoutSession", back_populates="user", cascade="all, delete-orphan")
