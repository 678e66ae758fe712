from typing import Optional, Sequence

from sqlalchemy import func, or_
from sqlmodel import Session, select

from zerowaste.models.user import User


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def find_by_public_id(self, public_id: str) -> Optional[User]:
        return self.session.exec(
            select(User).where(User.public_id == public_id)
        ).first()

    def find_all(self, role: Optional[str] = None, limit: int = 50) -> Sequence[User]:
        query = select(User).where(User.is_active == True)  # noqa: E712

        if role:
            query = query.where(User.role == role)

        return self.session.exec(
            query.order_by(User.created_at.desc()).limit(limit)
        ).all()

    def search(self, text: str, role: Optional[str] = None, limit: int = 20) -> Sequence[User]:
        pattern = f"%{text.lower()}%"
        query = (
            select(User)
            .where(User.is_active == True)  # noqa: E712
            .where(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
        )

        if role:
            query = query.where(User.role == role)

        return self.session.exec(query.order_by(User.name).limit(limit)).all()

    def find_ngos_with_location(self, active_only: bool = True) -> Sequence[User]:
        query = (
            select(User)
            .where(User.role == "ngo")
            .where(User.lat.is_not(None))
            .where(User.lng.is_not(None))
        )

        if active_only:
            query = query.where(User.is_active == True)  # noqa: E712

        return self.session.exec(query).all()

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.flush()
