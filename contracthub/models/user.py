# contracthub/models/user.py

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from contracthub.core.security.credentials import generate_secure_token, validate_routing_number


class PaymentType(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_ACCOUNT = "bank_account"


class PaymentDestination(str, Enum):
    PAYPAL = "paypal"
    BANK_ACCOUNT = "bank_account"


class BankDetails(BaseModel):
    """
    Bank account details as submitted by the client.

    Account, routing, sort code, SWIFT and IBAN values are replaced with
    their encrypted form before an organization is persisted, so the
    format checks only apply to incoming data.
    """
    account_number: str = Field(min_length=8, max_length=17, pattern=r"^[0-9]+$")
    routing_number: Optional[str] = Field(default=None, pattern=r"^[0-9]{9}$")
    sort_code: Optional[str] = None
    bank_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    account_type: str = Field(default="checking", pattern=r"^(checking|savings)$")
    account_holder_name: str = Field(min_length=2, max_length=100)
    swift_code: Optional[str] = Field(default=None, pattern=r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
    iban_number: Optional[str] = None

    @field_validator("account_number", mode="before")
    @classmethod
    def _strip_spaces(cls, value):
        return value.replace(" ", "") if isinstance(value, str) else value

    @field_validator("routing_number")
    @classmethod
    def _routing_checksum(cls, value):
        if value is not None and not validate_routing_number(value):
            raise ValueError("Invalid routing number checksum")
        return value


class PaymentInfo(BaseModel):
    type: PaymentType
    token: str = Field(min_length=1)
    last4: Optional[str] = Field(default=None, min_length=4, max_length=4)
    bank_details: Optional[BankDetails] = None
    receive_payments_to: PaymentDestination
    receive_payments_details: str = Field(min_length=1)

    @model_validator(mode="after")
    def _bank_details_required(self):
        if self.type == PaymentType.BANK_ACCOUNT and self.bank_details is None:
            raise ValueError("Bank account details are required for bank account payments")
        return self


class StoredBankDetails(BaseModel):
    """Bank details after encryption; numbers hold ciphertext"""
    account_number: str
    routing_number: Optional[str] = None
    sort_code: Optional[str] = None
    bank_name: Optional[str] = None
    account_type: str = "checking"
    account_holder_name: str
    swift_code: Optional[str] = None
    iban_number: Optional[str] = None


class StoredPaymentInfo(BaseModel):
    type: PaymentType
    token: str
    last4: Optional[str] = None
    bank_details: Optional[StoredBankDetails] = None
    receive_payments_to: PaymentDestination
    receive_payments_details: str


def default_payment(email: str) -> StoredPaymentInfo:
    """PayPal payment info given to new personal accounts"""
    return StoredPaymentInfo(
        type=PaymentType.PAYPAL,
        token=generate_secure_token(16),
        receive_payments_to=PaymentDestination.PAYPAL,
        receive_payments_details=email
    )


class User(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    username: str
    email: Optional[EmailStr] = None
    full_name: str
    # 24 characters
    signature_key: str = Field(default_factory=lambda: generate_secure_token(12))
    is_business_account: bool = False
    organization_id: Optional[str] = None
    payment: Optional[StoredPaymentInfo] = None
    contracts: List[str] = Field(default_factory=list)
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserPublic(BaseModel):
    """User fields safe to return to the client"""
    id: str
    username: str
    email: Optional[str] = None
    full_name: str
    is_business_account: bool
    organization_id: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            is_business_account=user.is_business_account,
            organization_id=user.organization_id
        )


class RegisterRequest(BaseModel):
    email: EmailStr
    full_name: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=8, max_length=128)
    payment: Optional[PaymentInfo] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
