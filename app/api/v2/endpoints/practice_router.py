"""Practice session endpoints: pick the words of a session and record answers."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.v2.dependencies import get_current_user, get_db
from app.core.config import settings
from app.models.user.user_model import User
from app.schemas.practice import practice_schema
from app.services.practice_service import PracticeError, PracticeService

router = APIRouter()


@router.get("/words", response_model=practice_schema.PracticeSessionOut, summary="Words for a practice session")
def get_practice_words(
    session_size: int = Query(
        default=settings.PRACTICE_SESSION_SIZE, ge=1, le=settings.PRACTICE_MAX_SESSION_SIZE
    ),
    level: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Failed words come first, then words due for review, then new words from
    the next category of the learner's level; the list is shuffled. An empty
    list means there is nothing to practice.
    """
    service = PracticeService.for_user(db, current_user)
    return service.build_session(session_size=session_size, level=level)


@router.post("/review", response_model=practice_schema.ReviewOut, summary="Record the answer to a word")
def submit_review(
    review_in: practice_schema.ReviewIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = PracticeService.for_user(db, current_user)
    try:
        return service.submit_answer(
            review_in.vocabulary_id,
            review_in.assessment,
            is_correct=review_in.is_correct,
            answer=review_in.answer,
        )
    except PracticeError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code)


@router.post("/guest/words", response_model=practice_schema.GuestSessionOut, summary="Practice session for a guest")
def get_guest_practice_words(
    session_in: practice_schema.GuestSessionIn,
    db: Session = Depends(get_db),
):
    service = PracticeService.for_guest(
        db,
        [record.model_dump() for record in session_in.records],
        level=session_in.level,
        last_category_id=session_in.last_category_id,
    )
    session = service.build_session(session_size=session_in.session_size)
    session["last_category_id"] = service.store.get_last_category(service.user_id)
    return session


@router.post("/guest/review", response_model=practice_schema.GuestReviewOut, summary="Record a guest answer")
def submit_guest_review(
    review_in: practice_schema.GuestReviewIn,
    db: Session = Depends(get_db),
):
    """
    Nothing is stored server side: the updated records are returned for the
    browser to keep.
    """
    service = PracticeService.for_guest(db, [record.model_dump() for record in review_in.records])
    try:
        result = service.submit_answer(
            review_in.vocabulary_id,
            review_in.assessment,
            is_correct=review_in.is_correct,
            answer=review_in.answer,
        )
    except PracticeError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code)

    result["records"] = service.export_guest_state()["records"]
    return result
