"""Actor and assignee models: who acts on a lead and who can receive it."""

from enum import IntEnum

from pydantic import BaseModel, Field


class UserType(IntEnum):
    """Numeric user-type codes shared with the lead store."""

    ADMIN = 1
    BUILDER = 2
    CHANNEL_PARTNER = 3
    SALES_MANAGER = 4
    TELECALLER = 5
    MARKETING_EXECUTIVE = 6
    RECEPTIONIST = 7


# Roles that own an organization's leads and may assign them to anyone.
OWNER_ROLES = frozenset({UserType.ADMIN, UserType.BUILDER})

# Roles a lead can be assigned to.
ASSIGNABLE_ROLES = frozenset({
    UserType.CHANNEL_PARTNER,
    UserType.SALES_MANAGER,
    UserType.TELECALLER,
    UserType.MARKETING_EXECUTIVE,
    UserType.RECEPTIONIST,
})


class OwnerRef(BaseModel):
    """The organization (builder or admin account) a lead belongs to."""

    user_type: int
    user_id: int

    model_config = {"frozen": True}


class Actor(BaseModel):
    """
    The authenticated user performing an operation.

    Employees and channel partners belong to the organization that created
    them (created_user_type/created_user_id). Builders and admins own
    themselves, so their created_* fields may be left empty.
    """

    user_id: int
    user_type: UserType
    name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field("", max_length=50)
    created_user_type: int | None = None
    created_user_id: int | None = None

    @property
    def is_owner_role(self) -> bool:
        return self.user_type in OWNER_ROLES

    @property
    def organization(self) -> OwnerRef:
        """Organization whose leads this actor works on."""
        if self.is_owner_role or self.created_user_id is None:
            return OwnerRef(user_type=int(self.user_type), user_id=self.user_id)
        return OwnerRef(
            user_type=self.created_user_type or int(UserType.BUILDER),
            user_id=self.created_user_id,
        )

    def is_same(self, user_type: int | None, user_id: int | None) -> bool:
        return user_type == int(self.user_type) and user_id == self.user_id


class Assignee(BaseModel):
    """An employee or channel partner that can be assigned leads."""

    id: int
    user_type: UserType
    name: str
    mobile: str | None = None
    emp_number: str | None = None
    status: int = 1
    created_user_id: int | None = None

    model_config = {"from_attributes": True}

    @property
    def is_active(self) -> bool:
        return self.status == 1
