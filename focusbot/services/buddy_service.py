"""
Accountability buddies.
A pair (user -> buddy) means `user` hears about `buddy`'s goal completions.
"""
import logging
from typing import List
from sqlalchemy.orm import Session

from focusbot.database import unit_of_work
from focusbot.exceptions import UserNotFoundError, ValidationException
from focusbot.models import BuddyPair, User
from focusbot.repositories.social_repository import BuddyRepository
from focusbot.repositories.user_repository import UserRepository

logger = logging.getLogger("focusbot.buddies")


class BuddyService:
    """Service for buddy pairs"""

    def __init__(self, db: Session):
        self.db = db
        self.buddy_repo = BuddyRepository()
        self.user_repo = UserRepository()

    def pair(self, user_id: int, buddy_id: int, notify: bool = True) -> List[BuddyPair]:
        """
        Pair two users both ways. Re-pairing just updates the notify flag.

        Returns:
            The two directed pairs
        """
        if user_id == buddy_id:
            raise ValidationException("buddy", "you can't be your own buddy")

        with unit_of_work(self.db, "pair_buddies"):
            user = self.user_repo.get_by_id(self.db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            buddy = self.user_repo.get_by_id(self.db, buddy_id)
            if buddy is None:
                raise UserNotFoundError(buddy_id)
            if user.community_id != buddy.community_id:
                raise ValidationException("buddy", "buddies must be in the same community")

            pairs = []
            for owner, other in ((user, buddy), (buddy, user)):
                pair = self.buddy_repo.get(self.db, owner.id, other.id)
                if pair is None:
                    pair = self.buddy_repo.create(self.db, BuddyPair(
                        community_id=owner.community_id,
                        user_id=owner.id,
                        buddy_id=other.id,
                        notify=notify
                    ))
                else:
                    pair.notify = notify
                pairs.append(pair)

        logger.info(f"Paired users {user_id} and {buddy_id}")
        return pairs

    def unpair(self, user_id: int, buddy_id: int) -> bool:
        """Remove the pairing in both directions; False when they weren't paired"""
        removed = False
        with unit_of_work(self.db, "unpair_buddies"):
            for owner_id, other_id in ((user_id, buddy_id), (buddy_id, user_id)):
                pair = self.buddy_repo.get(self.db, owner_id, other_id)
                if pair is not None:
                    self.buddy_repo.delete(self.db, pair)
                    removed = True

        if removed:
            logger.info(f"Unpaired users {user_id} and {buddy_id}")
        return removed

    def buddies_to_notify(self, user_id: int) -> List[User]:
        """Users that want to hear about user_id's progress"""
        return [pair.user for pair in self.buddy_repo.get_watchers(self.db, user_id)]

    def list_buddies(self, user_id: int) -> List[User]:
        return [pair.buddy for pair in self.buddy_repo.get_buddies(self.db, user_id)]
