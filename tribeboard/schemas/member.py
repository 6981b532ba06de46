from datetime import datetime
from pydantic import BaseModel
from .common import ORMModel
from ..models.family_member import MemberRole, MembershipStatus
class MemberOut(ORMModel):
    id: str
    family_id: str
    user_id: str
    role: MemberRole
    status: MembershipStatus
    display_name: str | None = None
    created_at: datetime
    role_changed_at: datetime | None = None
class JoinFamilyIn(BaseModel):
    code: str
    role: MemberRole = MemberRole.ADULT
    display_name: str | None = None
class RoleUpdate(BaseModel):
    role: MemberRole
