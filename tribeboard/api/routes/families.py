import io
import logging

import qrcode
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ...core.config import settings
from ...models.family import Family
from ...models.user import User
from ...schemas.family import FamilyCreate, FamilyOut, FamilyCreateOut, CodeValidationOut, SyncReportOut
from ...schemas.member import MemberOut, JoinFamilyIn, RoleUpdate
from ...services.code_service import CodeGenerationError, FamilyCodeService, normalize_code, validate_format
from ...services.family_service import (
    FamilyConflictError,
    FamilyNotFoundError,
    FamilyPermissionError,
    FamilyServiceError,
    FamilyValidationError,
    RoleConstraintError,
    active_members,
    create_family,
    ensure_member,
    get_family,
    join_family,
    list_user_families,
    remove_member,
    sync_pending_families,
    update_member_role,
)
from ...services.stores import HttpRemoteStore
from ..deps import get_db, get_current_user, get_code_service, get_remote_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: FamilyServiceError) -> HTTPException:
    if isinstance(e, FamilyValidationError):
        return HTTPException(422, str(e))
    if isinstance(e, FamilyNotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, FamilyPermissionError):
        return HTTPException(403, str(e))
    if isinstance(e, (FamilyConflictError, RoleConstraintError)):
        return HTTPException(409, str(e))
    return HTTPException(400, str(e))


def family_out(fam: Family) -> FamilyOut:
    return FamilyOut(
        id=fam.id,
        name=fam.name,
        code=fam.code,
        created_by_user_id=fam.created_by_user_id,
        created_at=fam.created_at,
        needs_sync=fam.needs_sync,
        members=[MemberOut.model_validate(m) for m in active_members(fam)],
    )


def _member_of(db: Session, family_id: str, user: User):
    fam = get_family(db, family_id)
    if not fam:
        raise HTTPException(404, "Family not found")
    member = ensure_member(db, user_id=user.id, family_id=fam.id)
    if not member:
        raise HTTPException(403, "Not a member of this family")
    return fam, member


@router.post("/", response_model=FamilyCreateOut)
async def create(
    payload: FamilyCreate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    code_service: FamilyCodeService = Depends(get_code_service),
    remote_store: HttpRemoteStore | None = Depends(get_remote_store),
):
    try:
        created = await create_family(
            db,
            owner=current,
            name=payload.name,
            display_name=payload.display_name,
            code_service=code_service,
            remote_store=remote_store,
        )
    except CodeGenerationError as e:
        logger.warning(f"Family creation for user {current.id} failed: {e}")
        raise HTTPException(503, "Couldn't generate a family code, please try again")
    except FamilyServiceError as e:
        raise _http_error(e)
    out = family_out(created.family)
    return FamilyCreateOut(**out.model_dump(), degraded=created.degraded, sync_pending=created.sync_pending)

@router.get("/my", response_model=list[FamilyOut])
def my_families(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return [family_out(f) for f in list_user_families(db, user_id=current.id)]

@router.get("/codes/{code}/validate", response_model=CodeValidationOut)
def validate_code(code: str):
    normalized = normalize_code(code)
    return CodeValidationOut(code=code, normalized=normalized, valid=validate_format(normalized))

@router.post("/join", response_model=MemberOut)
def join(payload: JoinFamilyIn, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    try:
        return join_family(db, user=current, code=payload.code, role=payload.role, display_name=payload.display_name)
    except FamilyServiceError as e:
        raise _http_error(e)

@router.post("/sync", response_model=SyncReportOut)
async def sync(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    remote_store: HttpRemoteStore | None = Depends(get_remote_store),
):
    if remote_store is None:
        raise HTTPException(503, "Sync backend is not configured")
    report = await sync_pending_families(db, remote_store, user_id=current.id)
    return SyncReportOut(attempted=report.attempted, synced=report.synced, failed=report.failed)

@router.get("/{family_id}", response_model=FamilyOut)
def get_one(family_id: str, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    fam, _ = _member_of(db, family_id, current)
    return family_out(fam)

@router.get("/{family_id}/qr", response_class=Response)
def qr_code(family_id: str, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    fam, _ = _member_of(db, family_id, current)
    data = f"{settings.JOIN_URL_BASE.rstrip('/')}/{fam.code}" if settings.JOIN_URL_BASE else fam.code
    img = qrcode.make(data, border=2)
    buf = io.BytesIO()
    img.save(buf)
    return Response(content=buf.getvalue(), media_type="image/png")

@router.patch("/{family_id}/members/{member_id}", response_model=MemberOut)
def change_role(
    family_id: str,
    member_id: str,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    _, acting = _member_of(db, family_id, current)
    try:
        return update_member_role(db, family_id=family_id, member_id=member_id, new_role=payload.role, acting_member=acting)
    except FamilyServiceError as e:
        raise _http_error(e)

@router.delete("/{family_id}/members/{member_id}", response_model=MemberOut)
def remove(family_id: str, member_id: str, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    _, acting = _member_of(db, family_id, current)
    try:
        return remove_member(db, family_id=family_id, member_id=member_id, acting_member=acting)
    except FamilyServiceError as e:
        raise _http_error(e)
