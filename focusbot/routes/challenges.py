"""
Challenge HTTP routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.exceptions import ValidationException
from focusbot.schemas import ChallengeCreate, ChallengeResponse, ChallengeSubmit, ChallengeValidate
from focusbot.services.challenge_service import ChallengeService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/challenges", tags=["challenges"])


@router.post("", response_model=ChallengeResponse, status_code=status.HTTP_201_CREATED)
def create_challenge(
    challenge: ChallengeCreate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Create a challenge; the creator always takes part."""
    users = UserService(db)
    ref = challenge.creator
    creator = users.get_or_create(ref.account_id, ref.community_id, ref.username)
    participant_ids = [
        users.get_or_create(account_id, ref.community_id).id
        for account_id in challenge.participant_account_ids
    ]
    return ChallengeService(db).create_challenge(
        creator.id,
        challenge.title,
        challenge.days,
        description=challenge.description,
        participant_ids=participant_ids,
        multiplier=challenge.multiplier
    )


@router.get("/{challenge_id}", response_model=ChallengeResponse)
def get_challenge(
    challenge_id: int,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    return ChallengeService(db).get_challenge(challenge_id)


@router.post("/{challenge_id}/submit")
def submit_completion(
    challenge_id: int,
    submission: ChallengeSubmit,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Submit a completion for validation by another participant."""
    ref = submission.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    participant = ChallengeService(db).submit_completion(challenge_id, user.id, submission.proof_url)
    return {"challenge_id": challenge_id, "user_id": user.id, "status": participant.status}


@router.post("/{challenge_id}/validate")
def validate_completion(
    challenge_id: int,
    validation: ChallengeValidate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    users = UserService(db)
    ref = validation.validator
    validator = users.get_or_create(ref.account_id, ref.community_id, ref.username)
    target = users.find(validation.target_account_id, ref.community_id)
    if target is None:
        raise ValidationException("target_account_id", "unknown member of this community")
    awarded = ChallengeService(db).validate_completion(
        challenge_id, validator.id, target.id, validation.approved
    )
    return {"challenge_id": challenge_id, "user_id": target.id, "points_awarded": awarded}
