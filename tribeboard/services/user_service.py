from sqlalchemy.orm import Session
from sqlalchemy import select
import logging
from ..models.user import User
from ..utils.validation import clean_display_name
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

def create_user(db: Session, *, email: str, password: str, display_name: str) -> User:
    display_name = clean_display_name(display_name)
    try:
        user = User(email=email.lower(), display_name=display_name, hashed_password=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"User created: id={user.id}, email={user.email}")
        return user
    except Exception as e:
        logger.error(f"Error creating user with email {email}: {str(e)}", exc_info=True)
        db.rollback()
        raise

def get_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()

def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
