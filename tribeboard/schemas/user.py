from pydantic import BaseModel, EmailStr
from typing import List
from .common import ORMModel
from .family import FamilyOut

class UserOut(ORMModel):
    id: str
    email: EmailStr
    display_name: str
    is_active: bool

class UserUpdate(BaseModel):
    display_name: str | None = None

class MeOut(UserOut):
    families: List[FamilyOut] = []
