"""Learner stats: experience, title, streaks and level."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_current_user, get_db
from app.models.user.user_model import User
from app.schemas.practice import practice_schema
from app.services.user_stats_service import UserStatsService

router = APIRouter()


@router.get("/stats", response_model=practice_schema.UserStatsOut, summary="Practice stats of the current learner")
def get_user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    return UserStatsService(db, current_user).build_stats()
