from datetime import datetime, timezone
def utcnow():
    return datetime.now(timezone.utc)
from .user import User
from .family import Family
from .family_member import FamilyMember
from .auth import RefreshToken
