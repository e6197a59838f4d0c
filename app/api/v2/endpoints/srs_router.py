"""Spaced-repetition overview endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_current_user, get_db
from app.models.user.user_model import User
from app.schemas.practice import practice_schema
from app.services.practice_service import PracticeService

router = APIRouter()


@router.get("/summary", response_model=practice_schema.SRSSummaryOut, summary="Spaced repetition summary")
def get_srs_summary(
    limit: int = Query(default=10, ge=0, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    return PracticeService.for_user(db, current_user).build_overview(limit=limit)
