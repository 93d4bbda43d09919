"""
Accountability buddy HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.schemas import BuddyCreate
from focusbot.services.buddy_service import BuddyService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/buddies", tags=["buddies"])


@router.post("", status_code=status.HTTP_201_CREATED)
def pair(
    request: BuddyCreate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    users = UserService(db)
    ref = request.user
    user = users.get_or_create(ref.account_id, ref.community_id, ref.username)
    buddy = users.get_or_create(request.buddy_account_id, ref.community_id)
    BuddyService(db).pair(user.id, buddy.id, request.notify)
    return {"user_id": user.id, "buddy_id": buddy.id, "notify": request.notify}


@router.post("/remove")
def unpair(
    request: BuddyCreate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    users = UserService(db)
    ref = request.user
    user = users.get_or_create(ref.account_id, ref.community_id, ref.username)
    buddy = users.get_or_create(request.buddy_account_id, ref.community_id)
    return {"removed": BuddyService(db).unpair(user.id, buddy.id)}


@router.get("")
def list_buddies(
    account_id: str = Query(...),
    community_id: str = Query(...),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    user = UserService(db).get_or_create(account_id, community_id)
    return [
        {"user_id": buddy.id, "account_id": buddy.account_id, "username": buddy.username}
        for buddy in BuddyService(db).list_buddies(user.id)
    ]
