"""
User registry.
Chat accounts are registered lazily, the first time they touch the bot.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session

from focusbot.database import unit_of_work
from focusbot.exceptions import StorageFailure
from focusbot.models import User
from focusbot.repositories.user_repository import UserRepository

logger = logging.getLogger("focusbot.users")


class UserService:
    """Service for resolving chat accounts to users"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository()

    def get_or_create(self, account_id: str, community_id: str, username: Optional[str] = None) -> User:
        """
        Find the user for an account in a community, creating it on first use.
        A changed display name is refreshed on the way through.
        """
        user = self.user_repo.get_by_account(self.db, account_id, community_id)
        if user is not None:
            if username and user.username != username:
                with unit_of_work(self.db, "update_username"):
                    user.username = username
            return user

        try:
            with unit_of_work(self.db, "create_user"):
                user = self.user_repo.create(self.db, User(
                    account_id=account_id,
                    community_id=community_id,
                    username=username,
                    total_points=0
                ))
        except StorageFailure:
            # Another request registered the same account first
            user = self.user_repo.get_by_account(self.db, account_id, community_id)
            if user is None:
                raise
            return user

        logger.info(f"Registered user {account_id} in community {community_id}")
        return user

    def find(self, account_id: str, community_id: str) -> Optional[User]:
        return self.user_repo.get_by_account(self.db, account_id, community_id)
