import enum


class MembershipStatus(str, enum.Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    declined = "DECLINED"


class MembershipRole(str, enum.Enum):
    admin = "ADMIN"
    member = "MEMBER"
