from ..models.user import User
from ..models.family import Family
from ..models.family_member import FamilyMember, MemberRole, MembershipStatus
from ..models.auth import RefreshToken
from ..db.base_class import Base
