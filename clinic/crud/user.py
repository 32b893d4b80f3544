from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from clinic.core.security import get_password_hash, verify_password
from clinic.crud.base import CRUDBase
from clinic.models.user import User
from clinic.schemas.user import UserCreate


class CRUDUser(CRUDBase[User, UserCreate, UserCreate]):
    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        db_obj = User(
            email=obj_in.email,
            hashed_password=get_password_hash(obj_in.password),
            full_name=obj_in.full_name,
            phone=obj_in.phone,
            role=obj_in.role,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def authenticate(self, db: Session, *, email: str, password: str) -> Optional[User]:
        user = self.get_by_email(db, email=email)
        if not user or not user.hashed_password:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def is_active(self, user: User) -> bool:
        return user.is_active

    def count(self, db: Session, *, active_only: bool = False, created_since: Optional[datetime] = None) -> int:
        query = db.query(func.count(User.id))
        if active_only:
            query = query.filter(User.is_active.is_(True))
        if created_since is not None:
            query = query.filter(User.created_at >= created_since)
        return query.scalar() or 0

user = CRUDUser(User)
