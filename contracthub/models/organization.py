# contracthub/models/organization.py

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from contracthub.models.user import PaymentInfo, StoredPaymentInfo


class TransactionCategory(str, Enum):
    DEFAULT = "default"
    EMERGENCY = "emergency"
    RECURRING = "recurring"


class MembershipAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ActivityLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    employee_id: str
    action: str
    cost: Optional[float] = None
    details: Optional[Dict[str, Any]] = None


class Organization(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    country: str
    registration_number: str
    address: str
    billing_account: StoredPaymentInfo
    receiving_account: StoredPaymentInfo
    employees: List[str] = Field(default_factory=list)
    employee_requests: List[str] = Field(default_factory=list)
    admin_users: List[str] = Field(default_factory=list)
    activity_log: List[ActivityLogEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_member(self, user_id: str) -> bool:
        return user_id in self.employees

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admin_users

    def log(self, employee_id: str, action: str, cost: Optional[float] = None,
            details: Optional[Dict[str, Any]] = None) -> ActivityLogEntry:
        entry = ActivityLogEntry(employee_id=employee_id, action=action, cost=cost, details=details)
        self.activity_log.append(entry)
        return entry


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    country: str = Field(min_length=2, max_length=100)
    registration_number: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=5, max_length=500)
    billing_account: PaymentInfo
    receiving_account: PaymentInfo


class MembershipResolution(BaseModel):
    action: MembershipAction


class VerifyTransactionRequest(BaseModel):
    organization_id: UUID
    cost: float = Field(gt=0)
    description: str = Field(min_length=1, max_length=500)
    category: TransactionCategory = TransactionCategory.DEFAULT

    @field_validator("cost")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("Cost must be a finite number")
        return value


class TransactionDecision(BaseModel):
    approved: bool
    reason: str


class TransactionResult(BaseModel):
    approved: bool
    reason: str
    transaction_id: str
    timestamp: datetime
    details: Dict[str, Any]


class TransactionStats(BaseModel):
    total: int
    approved: int
    rejected: int
    total_amount: float


class TransactionHistory(BaseModel):
    transactions: List[ActivityLogEntry]
    stats: TransactionStats
