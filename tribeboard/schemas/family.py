from datetime import datetime
from typing import List
from pydantic import BaseModel
from .common import ORMModel
from .member import MemberOut
class FamilyCreate(BaseModel):
    name: str
    display_name: str | None = None
class FamilyOut(ORMModel):
    id: str
    name: str
    code: str
    created_by_user_id: str | None
    created_at: datetime
    needs_sync: bool
    members: List[MemberOut] = []
class FamilyCreateOut(FamilyOut):
    # degraded: code uniqueness was only checked locally
    degraded: bool = False
    sync_pending: bool = True
class CodeValidationOut(BaseModel):
    code: str
    normalized: str
    valid: bool
class SyncReportOut(BaseModel):
    attempted: int
    synced: int
    failed: int
