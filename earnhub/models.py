from datetime import datetime
from enum import Enum
from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
UPI_PATTERN = r"^[A-Za-z0-9_.\-]{2,256}@[A-Za-z]{3,65}$"
MOBILE_PATTERN = r"^\+?[0-9][0-9 \-]{6,18}[0-9]$"


def normalize_handle(handle: str) -> str:
    """Drop surrounding whitespace and a typed leading @, keep the case."""
    return handle.strip().lstrip("@")


def same_handle(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Record(CamelModel):
    """A stored entity. Records are replaced on update, never mutated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp_field: ClassVar[Optional[str]] = "created_at"

    id: str


# Enums

class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SupportStatus(str, Enum):
    PENDING = "pending"
    RESPONDED = "responded"


class TaskType(str, Enum):
    FOLLOW = "follow"
    LIKE = "like"
    SHARE = "share"
    CUSTOM = "custom"


class WithdrawalType(str, Enum):
    UPI = "upi"
    AMAZON = "amazon"
    FLIPKART = "flipkart"
    GOOGLE_PLAY = "googleplay"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


# Stored entities

class User(Record):
    instagram_handle: str
    is_verified: bool = False
    balance: int = 500
    completed_tasks: int = 0
    has_advanced_access: bool = False
    is_instagram_bound: bool = False
    created_at: datetime


class Task(Record):
    title: str
    description: str
    reward: int
    task_type: TaskType
    is_advanced: bool = False
    is_active: bool = True
    created_at: datetime


class TaskSubmission(Record):
    timestamp_field: ClassVar[Optional[str]] = "submitted_at"

    user_id: str
    task_id: str
    screenshot_url: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    reward: Optional[int] = None
    submitted_at: datetime


class VerificationRequest(Record):
    instagram_handle: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime


class InstagramBindingRequest(Record):
    user_id: str
    username: str
    access_code: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime


class UpiDetails(CamelModel):
    upi_id: str = Field(pattern=UPI_PATTERN)


class GiftCardDetails(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    mobile: str = Field(pattern=MOBILE_PATTERN)


class WithdrawalRequest(Record):
    user_id: str
    type: WithdrawalType
    amount: int
    details: Union[UpiDetails, GiftCardDetails]
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime


class SupportRequest(Record):
    email: str
    message: str
    status: SupportStatus = SupportStatus.PENDING
    created_at: datetime


class Setting(Record):
    timestamp_field: ClassVar[Optional[str]] = None

    key: str
    value: str


# Request payloads

class VerificationCreate(CamelModel):
    instagram_handle: str = Field(min_length=1, max_length=31)

    @field_validator("instagram_handle")
    @classmethod
    def _normalize(cls, value: str) -> str:
        value = normalize_handle(value)
        if not value:
            raise ValueError("handle must not be empty")
        return value


class TaskCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    reward: int = Field(gt=0)
    task_type: TaskType
    is_advanced: bool = False
    is_active: bool = True


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    reward: Optional[int] = Field(default=None, gt=0)
    task_type: Optional[TaskType] = None
    is_advanced: Optional[bool] = None
    is_active: Optional[bool] = None


class SubmissionCreate(CamelModel):
    user_id: str = Field(min_length=1)
    screenshot_url: str = Field(min_length=1)


class BindingCreate(CamelModel):
    # Unknown fields (a password in particular) are refused outright.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    user_id: str = Field(min_length=1)
    username: str = Field(min_length=1, max_length=31)
    access_code: Optional[str] = Field(default=None, max_length=64)


class UpiWithdrawalCreate(CamelModel):
    user_id: str = Field(min_length=1)
    type: Literal["upi"]
    amount: int = Field(gt=0)
    details: UpiDetails


class GiftCardWithdrawalCreate(CamelModel):
    user_id: str = Field(min_length=1)
    type: Literal["amazon", "flipkart", "googleplay"]
    amount: int = Field(gt=0)
    details: GiftCardDetails


WithdrawalCreate = Annotated[
    Union[UpiWithdrawalCreate, GiftCardWithdrawalCreate],
    Field(discriminator="type"),
]


class SupportCreate(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    message: str = Field(min_length=1, max_length=5000)


class ReviewDecision(CamelModel):
    action: ReviewAction


class AdminLogin(CamelModel):
    password: str


class SettingUpsert(CamelModel):
    key: str = Field(min_length=1, max_length=100)
    value: str
