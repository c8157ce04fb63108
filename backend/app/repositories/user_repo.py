# app/repositories/user_repo.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import User, UserRole
from app.repositories.base import BaseRepository, Page

class EmailTaken(ValueError):
    pass

class UserRepository(BaseRepository[User]):
    model = User

    # READS
    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def list(self, *, role: UserRole | None = None, limit: int = 50, offset: int = 0) -> Page[User]:
        stmt = select(User).order_by(User.id.asc())
        count = select(func.count()).select_from(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
            count = count.where(User.role == role)
        items = self.db.execute(stmt.limit(limit).offset(offset)).scalars().all()
        total = self.db.execute(count).scalar_one()
        return Page(items=list(items), total=total, limit=limit, offset=offset)

    # WRITES
    def create(self, *, email: str, name: str, password_hash: str, role: str = "user") -> User:
        user = User(email=email, name=name, password_hash=password_hash, role=role)
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            return user
        except IntegrityError:
            self.db.rollback()
            raise EmailTaken(email)

    def set_role(self, user_id: int, *, role: str) -> Optional[User]:
        """Coach promotion; called from admin tooling and tests."""
        user = self.get(user_id)
        if not user:
            return None
        user.role = UserRole(role)
        self.db.commit()
        self.db.refresh(user)
        return user
