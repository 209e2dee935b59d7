from sqlalchemy.orm import Session
from db.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_user(self, user_id: int, update_data: dict) -> User | None:
        """Update user with dict of fields"""
        existing_user = self.get_user_by_id(user_id)
        if not existing_user:
            return None
        for key, value in update_data.items():
            if hasattr(existing_user, key):
                setattr(existing_user, key, value)
        self.db.commit()
        self.db.refresh(existing_user)
        return existing_user

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    def get_user_by_id(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def list_users(self, limit: int = None) -> list[User]:
        query = self.db.query(User).order_by(User.id)
        if limit:
            query = query.limit(limit)
        return query.all()
