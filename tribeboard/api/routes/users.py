from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...schemas.user import UserOut, UserUpdate, MeOut
from ...models.user import User
from ...utils.validation import clean_display_name
from ..deps import get_db, get_current_user
from ...services.family_service import list_user_families
from .families import family_out

router = APIRouter()


def _build_me_out(db: Session, user: User) -> MeOut:
    """User info plus every family the user is an active member of."""
    families = list_user_families(db, user_id=user.id)
    user_out = UserOut.model_validate(user)
    return MeOut(**user_out.model_dump(), families=[family_out(f) for f in families])


@router.get("/me", response_model=MeOut)
def me(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return _build_me_out(db, current)


@router.patch("/me", response_model=MeOut)
def update_me(payload: UserUpdate, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    if payload.display_name is not None:
        try:
            current.display_name = clean_display_name(payload.display_name)
        except ValueError as e:
            raise HTTPException(422, str(e))
    db.commit()
    db.refresh(current)
    return _build_me_out(db, current)
