from tailauth.core.security import create_access_token
from tailauth.db.enums import MembershipStatus
from tailauth.permissions.repository import MembershipRecord, ResourceRecord


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


class FakeStore:
    """In-memory AuthorizationStore used by the pure gate tests."""

    def __init__(self, memberships=None, resources=None, owners=None):
        # user_id -> MembershipRecord (only ACCEPTED ones are returned)
        self.memberships = memberships or {}
        # (kind, id) -> ResourceRecord
        self.resources = resources or {}
        # user ids that own at least one project
        self.owners = set(owners or ())
        self.reads = 0

    async def find_accepted_membership(self, user_id):
        self.reads += 1
        record = self.memberships.get(user_id)
        if record is not None and record.status == MembershipStatus.accepted.value:
            return record
        return None

    async def owns_any_resource(self, user_id):
        self.reads += 1
        return user_id in self.owners

    async def get_resource_owner_and_assignment(self, kind, resource_id):
        self.reads += 1
        return self.resources.get((kind, resource_id))


def membership(user_id, role, invited_by="alice", status=MembershipStatus.accepted.value):
    return MembershipRecord(
        membership_id=f"m-{user_id}",
        member_user_id=user_id,
        role=role,
        status=status,
        invited_by_user_id=invited_by,
    )


def default_store() -> FakeStore:
    """alice owns the account, bob is ADMIN, carol MEMBER, dave only PENDING; zed is another account."""
    return FakeStore(
        memberships={
            "bob": membership("bob", "ADMIN"),
            "carol": membership("carol", "MEMBER"),
            "dave": membership("dave", "ADMIN", status=MembershipStatus.pending.value),
        },
        resources={
            ("project", "p1"): ResourceRecord(owner_account_id="alice", assignees=frozenset({"carol"})),
            ("project", "p2"): ResourceRecord(owner_account_id="alice"),
            ("project", "pz"): ResourceRecord(owner_account_id="zed"),
            ("task", "t1"): ResourceRecord(owner_account_id="alice", assignees=frozenset({"carol"})),
            ("task", "t2"): ResourceRecord(owner_account_id="alice"),
        },
        owners={"alice", "zed"},
    )
