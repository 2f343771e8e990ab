from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .security import get_user_id_from_authorization
from app import auth_flow, models
from app.database import get_db


async def get_current_user_id(authorization: Optional[str] = Header(default=None)) -> Optional[int]:
    return get_user_id_from_authorization(authorization)


async def get_current_user(
        user_id: Optional[int] = Depends(get_current_user_id), db: Session = Depends(get_db)
) -> models.User:
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = auth_flow.get_user_for_token(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


async def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user
