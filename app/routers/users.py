from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import auth_flow, models, schemas
from ..core.dependencies import get_current_user
from ..database import get_db

router = APIRouter()


@router.post("/setup-profile", response_model=schemas.ProfileResponse)
def setup_profile(
        data: schemas.ProfileSetup,
        current_user: models.User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    user = auth_flow.setup_profile(db, current_user, data.degree_program, data.subjects)
    return {"message": "Profile setup completed successfully", "user": user}
