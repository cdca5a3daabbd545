from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    DONOR = "donor"
    RECEIVER = "receiver"
    ADMIN = "admin"


class Variant(str, Enum):
    """Which kind of registration a record belongs to."""

    DONOR = "donor"
    RECEIVER = "receiver"


class RecordStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Identity(BaseModel):
    """The logged-in user as the backend describes it.

    Field aliases match the backend's user record so the cached copy in the
    session can be fed straight back into ``Identity.model_validate``.
    """

    id: str = Field(alias="_id")
    full_name: str = Field(default="", alias="fullName")
    email: str = ""
    # Kept as a plain string: an unexpected role must not break the session.
    role: str = ""
    is_premium: bool = Field(default=False, alias="isPremium")
    profile_pic: Optional[str] = Field(default=None, alias="profilePic")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @property
    def first_name(self) -> str:
        parts = self.full_name.split()
        return parts[0] if parts else ""

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Session(BaseModel):
    token: str
    identity: Identity


class RegistrationRecord(BaseModel):
    """A donor or receiver application.

    Only the review-related fields are typed; the personal and role-specific
    fields the backend returns are kept as extras (``record.firstName``,
    ``record.organs``...).
    """

    id: str = Field(alias="_id")
    user_id: Any = Field(default=None, alias="userId")
    status: str = RecordStatus.PENDING.value
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    variant: Optional[Variant] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    def field(self, name: str, default: Any = None) -> Any:
        return (self.model_extra or {}).get(name, default)


class ContactRequest(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    donor_id: Any = Field(default=None, alias="donorId")
    receiver: Any = Field(default=None, alias="receiverId")
    receiver_profile: Optional[RegistrationRecord] = Field(
        default=None, alias="receiverProfile"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    @property
    def receiver_email(self) -> Optional[str]:
        if isinstance(self.receiver, dict):
            return self.receiver.get("email")
        return None


class ContactMessage(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


class AdminStats(BaseModel):
    total_users: int = Field(default=0, alias="totalUsers")
    total_donors: int = Field(default=0, alias="totalDonors")
    total_receivers: int = Field(default=0, alias="totalReceivers")
    pending_donors: int = Field(default=0, alias="pendingDonors")
    pending_receivers: int = Field(default=0, alias="pendingReceivers")

    model_config = ConfigDict(populate_by_name=True)


class ReviewSummary(BaseModel):
    total: int = 0
    donors: int = 0
    receivers: int = 0
    pending_donors: int = 0
    pending_receivers: int = 0


class Attachment(BaseModel):
    """An uploaded file on its way to the backend."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def as_file(self) -> tuple:
        return (self.filename, self.content, self.content_type)


class LoginData(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    full_name: str = Field(alias="fullName")
    email: EmailStr
    password: str
    role: Literal["donor", "receiver", "admin"]
    admin_code: Optional[str] = Field(default=None, alias="adminCode")

    model_config = ConfigDict(populate_by_name=True)
