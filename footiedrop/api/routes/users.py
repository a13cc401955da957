from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from footiedrop.api.deps import get_current_user
from footiedrop.db.session import get_db
from footiedrop.models.user import User
from footiedrop.schemas.openapi import error_responses
from footiedrop.schemas.user import StatusOut, UserOut
from footiedrop.services import presence

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut, responses=error_responses(401))
async def get_me(current: User = Depends(get_current_user)):
    return current


@router.get("/me/status", response_model=StatusOut, responses=error_responses(401, 404))
async def get_status(current: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await presence.get_status(db, current.id)


# 400 when a precondition for going online fails, 409 when a concurrent toggle won
@router.post("/me/status/toggle", response_model=StatusOut, responses=error_responses(400, 401, 404, 409))
async def toggle_status(current: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await presence.toggle_status(db, current.id)
