from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

from blip.core.auth import get_current_user_id
from blip.core.db import get_db
from blip.schemas.users import (
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    UserCreateRequest,
    UserCreateResponse,
    ProfileOut,
    UserOut,
    UserStatsResponse,
)
from blip.services import users

router = APIRouter()


# ----------------------------
# SIGNUP
# ----------------------------
@router.post("/users/create", response_model=UserCreateResponse)
def user_create(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
):
    logger.info("Signup requested")
    user = users.create_account(db, **payload.model_dump())
    # no access token until the email is verified
    return UserCreateResponse(user=UserOut.model_validate(user))


# ----------------------------
# PROFILE
# ----------------------------
@router.get("/user/profile", response_model=ProfileResponse)
def profile_get(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return ProfileResponse(profile=ProfileOut.model_validate(users.get_user(db, user_id)))


@router.patch("/user/profile", response_model=ProfileUpdateResponse)
def profile_update(
    payload: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    user = users.update_profile(db, user_id, payload.model_dump(exclude_none=True))
    return ProfileUpdateResponse(profile=ProfileOut.model_validate(user))


# ----------------------------
# STATS
# ----------------------------
@router.get("/user/stats", response_model=UserStatsResponse)
def profile_stats(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return users.get_stats(db, user_id)
