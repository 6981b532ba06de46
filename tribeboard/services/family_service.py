import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.family import Family
from ..models.family_member import FamilyMember, MemberRole, MembershipStatus
from ..models.user import User
from ..utils.validation import clean_family_name, clean_display_name
from .code_service import FamilyCodeService, normalize_code, validate_format
from .stores import HttpRemoteStore

logger = logging.getLogger(__name__)


class FamilyServiceError(ValueError):
    pass

class FamilyValidationError(FamilyServiceError):
    pass

class FamilyNotFoundError(FamilyServiceError):
    pass

class FamilyConflictError(FamilyServiceError):
    pass

class RoleConstraintError(FamilyServiceError):
    pass

class FamilyPermissionError(FamilyServiceError):
    pass


@dataclass
class FamilyCreation:
    family: Family
    membership: FamilyMember
    degraded: bool
    sync_pending: bool


@dataclass
class SyncReport:
    attempted: int = 0
    synced: int = 0
    failed: int = 0


def family_payload(fam: Family) -> dict:
    return {
        "id": fam.id,
        "name": fam.name,
        "code": fam.code,
        "created_by_user_id": fam.created_by_user_id,
        "created_at": fam.created_at.isoformat() if fam.created_at else None,
    }


async def _push(db: Session, fam: Family, remote_store: HttpRemoteStore) -> bool:
    if not await remote_store.push_family(family_payload(fam)):
        return False
    fam.needs_sync = False
    fam.last_synced_at = datetime.now(timezone.utc)
    db.commit()
    return True


async def create_family(
    db: Session,
    *,
    owner: User,
    name: str,
    display_name: str | None = None,
    code_service: FamilyCodeService,
    remote_store: Optional[HttpRemoteStore] = None,
) -> FamilyCreation:
    """
    Create a family with a fresh code and make ``owner`` its Parent Admin.

    The family is pushed to the sync backend right away unless the code was
    only checked locally; otherwise it stays ``needs_sync`` for a later
    ``sync_pending_families`` run.

    Raises:
        FamilyValidationError: bad family or display name.
        CodeGenerationError: no unique code could be produced.
        FamilyConflictError: the code was taken between check and commit.
    """
    try:
        name = clean_family_name(name)
        if display_name is not None:
            display_name = clean_display_name(display_name)
    except ValueError as e:
        raise FamilyValidationError(str(e)) from e

    generated = await code_service.generate_unique_code()

    fam = Family(name=name, code=generated.code, created_by_user_id=owner.id, needs_sync=True)
    db.add(fam)
    try:
        db.flush()
        member = FamilyMember(
            family_id=fam.id,
            user_id=owner.id,
            role=MemberRole.PARENT_ADMIN,
            status=MembershipStatus.ACTIVE,
            display_name=display_name or owner.display_name,
        )
        db.add(member)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Family code {generated.code} was claimed before commit: {e}")
        raise FamilyConflictError("Family code already in use, please try again") from e
    db.refresh(fam)
    db.refresh(member)
    logger.info(f"Family created: id={fam.id}, code={fam.code}, degraded={generated.degraded}")

    if remote_store is not None and not generated.degraded:
        await _push(db, fam, remote_store)

    return FamilyCreation(family=fam, membership=member, degraded=generated.degraded, sync_pending=fam.needs_sync)

def list_user_families(db: Session, *, user_id: str) -> list[Family]:
    q = (
        select(Family)
        .join(Family.members)
        .where(FamilyMember.user_id == user_id, FamilyMember.status == MembershipStatus.ACTIVE)
    )
    return list(db.execute(q).scalars())

def get_family(db: Session, family_id: str) -> Family | None:
    return db.get(Family, family_id)

def get_family_by_code(db: Session, code: str) -> Family | None:
    return db.execute(select(Family).where(Family.code == code.upper())).scalar_one_or_none()

def active_members(fam: Family) -> list[FamilyMember]:
    return [m for m in fam.members if m.status == MembershipStatus.ACTIVE]

def ensure_member(db: Session, *, user_id: str, family_id: str) -> FamilyMember | None:
    return db.execute(
        select(FamilyMember).where(
            FamilyMember.user_id == user_id,
            FamilyMember.family_id == family_id,
            FamilyMember.status == MembershipStatus.ACTIVE,
        )
    ).scalar_one_or_none()

def family_has_parent_admin(db: Session, family_id: str) -> bool:
    q = select(FamilyMember.id).where(
        FamilyMember.family_id == family_id,
        FamilyMember.role == MemberRole.PARENT_ADMIN,
        FamilyMember.status == MembershipStatus.ACTIVE,
    )
    return db.execute(q).first() is not None

def join_family(
    db: Session,
    *,
    user: User,
    code: str,
    role: MemberRole = MemberRole.ADULT,
    display_name: str | None = None,
) -> FamilyMember:
    code = normalize_code(code)
    if not validate_format(code):
        raise FamilyValidationError("Family code must be 6-8 letters or digits")
    if display_name is not None:
        try:
            display_name = clean_display_name(display_name)
        except ValueError as e:
            raise FamilyValidationError(str(e)) from e

    fam = get_family_by_code(db, code)
    if not fam:
        raise FamilyNotFoundError("No family found with this code")

    existing = db.execute(
        select(FamilyMember).where(FamilyMember.user_id == user.id, FamilyMember.family_id == fam.id)
    ).scalar_one_or_none()
    if existing and existing.status == MembershipStatus.ACTIVE:
        raise FamilyConflictError("Already a member of this family")
    if role == MemberRole.PARENT_ADMIN and family_has_parent_admin(db, fam.id):
        raise RoleConstraintError("A Parent Admin already exists for this family")

    if existing:
        # rejoining after removal keeps the same membership row
        existing.status = MembershipStatus.ACTIVE
        existing.role = role
        existing.role_changed_at = datetime.now(timezone.utc)
        existing.display_name = display_name or user.display_name
        member = existing
    else:
        member = FamilyMember(
            family_id=fam.id,
            user_id=user.id,
            role=role,
            status=MembershipStatus.ACTIVE,
            display_name=display_name or user.display_name,
        )
        db.add(member)
    fam.needs_sync = True
    db.commit()
    db.refresh(member)
    logger.info(f"User {user.id} joined family {fam.id} as {role}")
    return member

def _managed_member(db: Session, *, family_id: str, member_id: str, acting_member: FamilyMember) -> FamilyMember:
    if acting_member.family_id != family_id or acting_member.role != MemberRole.PARENT_ADMIN:
        raise FamilyPermissionError("Only the Parent Admin can manage members")
    member = db.get(FamilyMember, member_id)
    if not member or member.family_id != family_id or member.status != MembershipStatus.ACTIVE:
        raise FamilyNotFoundError("Member not found")
    return member

def update_member_role(
    db: Session, *, family_id: str, member_id: str, new_role: MemberRole, acting_member: FamilyMember
) -> FamilyMember:
    member = _managed_member(db, family_id=family_id, member_id=member_id, acting_member=acting_member)
    if member.role == new_role:
        raise RoleConstraintError("Member already has this role")
    if member.id == acting_member.id:
        raise RoleConstraintError("The Parent Admin cannot change their own role")
    if new_role == MemberRole.PARENT_ADMIN and family_has_parent_admin(db, family_id):
        raise RoleConstraintError("A Parent Admin already exists for this family")

    member.role = new_role
    member.role_changed_at = datetime.now(timezone.utc)
    member.family.needs_sync = True
    db.commit()
    db.refresh(member)
    logger.info(f"Member {member.id} in family {family_id} is now {new_role}")
    return member

def remove_member(db: Session, *, family_id: str, member_id: str, acting_member: FamilyMember) -> FamilyMember:
    member = _managed_member(db, family_id=family_id, member_id=member_id, acting_member=acting_member)
    if member.id == acting_member.id:
        raise RoleConstraintError("The Parent Admin cannot remove themselves")
    member.status = MembershipStatus.REMOVED
    member.family.needs_sync = True
    db.commit()
    db.refresh(member)
    logger.info(f"Member {member.id} removed from family {family_id}")
    return member

async def sync_pending_families(
    db: Session, remote_store: HttpRemoteStore, *, user_id: str | None = None
) -> SyncReport:
    q = select(Family).where(Family.needs_sync.is_(True))
    if user_id:
        q = q.join(Family.members).where(
            FamilyMember.user_id == user_id, FamilyMember.status == MembershipStatus.ACTIVE
        )
    report = SyncReport()
    for fam in db.execute(q).scalars().all():
        report.attempted += 1
        if await _push(db, fam, remote_store):
            report.synced += 1
        else:
            report.failed += 1
    logger.info(f"Family sync: {report.synced}/{report.attempted} pushed, {report.failed} failed")
    return report
