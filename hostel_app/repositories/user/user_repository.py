"""User and resident profile repositories."""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel_app.models.base.enums import UserRole
from hostel_app.models.user import User, UserProfile
from hostel_app.repositories.base.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):

    def __init__(self, db: Session):
        super().__init__(User, db)

    def list_by_role(self, role: UserRole) -> List[User]:
        stmt = select(User).where(User.role == role).order_by(User.username)
        return list(self.db.scalars(stmt))


class UserProfileRepository(BaseRepository[UserProfile]):

    def __init__(self, db: Session):
        super().__init__(UserProfile, db)

    def find_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        return self.db.scalars(
            select(UserProfile).where(UserProfile.user_id == user_id)
        ).first()

    def find_for_users(self, user_ids: Iterable[str]) -> List[UserProfile]:
        ids = list(user_ids)
        if not ids:
            return []
        return list(self.db.scalars(select(UserProfile).where(UserProfile.user_id.in_(ids))))

    def upsert(self, user_id: str, fields: Dict[str, Any]) -> UserProfile:
        """
        Create the profile or merge ``fields`` into it.

        ``None`` values never overwrite stored data.
        """
        profile = self.find_by_user_id(user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id)
            self.db.add(profile)

        for name, value in fields.items():
            if value is not None:
                setattr(profile, name, value)

        self.db.flush()
        return profile
