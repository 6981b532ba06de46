from typing import Generator, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import jwt
from ..core.config import settings
from ..db.session import SessionLocal
from ..models.user import User
from ..services.code_service import FamilyCodeService
from ..services.security import decode_access_token
from ..services.stores import HttpRemoteStore, SqlAlchemyLocalStore
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Inactive or missing user")
    return user
def get_remote_store(request: Request) -> HttpRemoteStore | None:
    # built once per process in main.lifespan; None when running local-only
    return getattr(request.app.state, "remote_store", None)
def get_code_service(
    db: Session = Depends(get_db),
    remote_store: HttpRemoteStore | None = Depends(get_remote_store),
) -> FamilyCodeService:
    return FamilyCodeService(
        SqlAlchemyLocalStore(db),
        remote_store,
        code_length=settings.CODE_LENGTH,
        max_attempts=settings.CODE_MAX_ATTEMPTS,
        remote_failure_threshold=settings.REMOTE_FAILURE_THRESHOLD,
        backoff_base=settings.BACKOFF_BASE_SECONDS,
        backoff_multiplier=settings.BACKOFF_MULTIPLIER,
        backoff_max=settings.BACKOFF_MAX_SECONDS,
    )
