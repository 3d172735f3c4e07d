from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.users_schema import User as UserSchema
from mixdrop.api.services.user_service import UserService
from mixdrop.api.utils.auth import get_current_user, require_user
from mixdrop.api.utils.database import get_db

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserSchema)
async def read_me(user: User = Depends(require_user)):
    return user


@router.get("/{user_id}", description="Profil public : mixes et playlists visibles")
async def read_profile(user_id: int, viewer: Optional[User] = Depends(get_current_user),
                       db: SQLAlchemySession = Depends(get_db)):
    return UserService(db).get_profile(user_id, viewer)
