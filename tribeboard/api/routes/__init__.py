from fastapi import APIRouter
from . import auth, users, families

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(families.router, prefix="/families", tags=["Families"])
