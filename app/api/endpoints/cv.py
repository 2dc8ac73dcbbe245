import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user
from app.core.exceptions import StoreUnavailable
from app.crud import cv as cv_crud
from app.crud.cv import SaveOutcome
from app.schemas.cv import CVResponse, CVSaveRequest, CVSaveResponse
from app.schemas.user import SessionUser

router = APIRouter(prefix="/api/cv", tags=["CV"])
logger = logging.getLogger(__name__)


# get_current_user is declared before get_db so unauthenticated
# requests are rejected before a database session is opened.
@router.post("", response_model=CVSaveResponse)
def save_cv(
    request: CVSaveRequest,
    response: Response,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save the current user's CV.

    Returns 201 when the CV is created and 200 when an existing CV is replaced.
    """
    try:
        cv, outcome = cv_crud.save_for_user(db, user.id, request.cv_data)
    except StoreUnavailable:
        logger.exception(f"Error saving CV for user {user.id}")
        raise HTTPException(status_code=500, detail="Failed to save CV")

    if outcome is SaveOutcome.CREATED:
        response.status_code = status.HTTP_201_CREATED
        logger.info(f"Created CV {cv.id} for user {user.id}")
        return CVSaveResponse(message="CV saved successfully")

    logger.info(f"Updated CV {cv.id} for user {user.id}")
    return CVSaveResponse(message="CV updated successfully")


@router.get("", response_model=CVResponse)
def get_cv(
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Retrieve the current user's CV.
    """
    try:
        cv = cv_crud.get_by_user_id(db, user.id)
    except StoreUnavailable:
        logger.exception(f"Error fetching CV for user {user.id}")
        raise HTTPException(status_code=500, detail="Failed to fetch CV")

    if not cv:
        raise HTTPException(status_code=404, detail="No CV found")

    return CVResponse.from_model(cv)
