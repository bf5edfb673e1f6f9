"""User repository."""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from beatmarket.models.user import User
from beatmarket.models.enums import UserRole
from beatmarket.repositories.base import BaseRepository
from beatmarket.core.security import hash_password


class UserRepository(BaseRepository[User]):

    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.get_by_field('email', email.strip().lower())

    def create_user(self, name: str, email: str, password: str, role: UserRole = UserRole.user) -> User:
        return self.create({
            'name': name,
            'email': email.strip().lower(),
            'hashed_password': hash_password(password),
            'role': role,
            'purchases': [],
        })

    def add_purchase(self, user_id: UUID, order_id: UUID) -> None:
        """Append an order id to the user's purchase history."""
        user = self.get(user_id)
        if user is None:
            return
        purchases = list(user.purchases or [])
        if str(order_id) not in purchases:
            purchases.append(str(order_id))
            # Reassign so the JSON column is flagged dirty
            user.purchases = purchases
            self.db.commit()
