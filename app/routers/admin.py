from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import auth_flow, schemas
from ..core.dependencies import require_admin
from ..database import get_db

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users", response_model=List[schemas.User])
def list_users(db: Session = Depends(get_db)):
    return auth_flow.list_users(db)
