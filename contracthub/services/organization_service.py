# contracthub/services/organization_service.py
"""
Organization workflow.

Organization creation, the membership request/approval state machine and
business-transaction verification. Membership pairs move
NonMember -> RequestPending -> Member, or back to NonMember on rejection;
a user id is never in both ``employees`` and ``employee_requests``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union
import logging

from contracthub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    ValidationError,
    not_found
)
from contracthub.core.security.credentials import (
    encrypt,
    generate_secure_token,
    sanitize_input,
    validate_iban,
    validate_routing_number,
    validate_sort_code
)
from contracthub.models.organization import (
    MembershipAction,
    Organization,
    OrganizationCreate,
    TransactionCategory,
    TransactionDecision,
    TransactionHistory,
    TransactionResult,
    TransactionStats,
    VerifyTransactionRequest
)
from contracthub.models.user import (
    PaymentInfo,
    PaymentType,
    StoredBankDetails,
    StoredPaymentInfo,
    User
)
from contracthub.services.storage import Repositories, persistence_boundary

logger = logging.getLogger(__name__)

TRANSACTION_ACTION_PREFIX = "Business transaction"


@dataclass(frozen=True)
class TransactionRules:
    """Approval ceiling per transaction category"""
    ceilings: Dict[TransactionCategory, float] = field(default_factory=lambda: {
        TransactionCategory.DEFAULT: 10000,
        TransactionCategory.EMERGENCY: 25000,
        TransactionCategory.RECURRING: 15000,
    })

    def ceiling_for(self, category: TransactionCategory) -> float:
        return self.ceilings.get(category, self.ceilings[TransactionCategory.DEFAULT])


APPROVAL_REASONS = {
    TransactionCategory.DEFAULT: "Standard transaction within limit",
    TransactionCategory.EMERGENCY: "Emergency transaction within limit",
    TransactionCategory.RECURRING: "Recurring transaction within limit",
}


def evaluate_transaction(
    cost: float,
    category: Union[TransactionCategory, str, None] = None,
    requester_is_admin: bool = False,
    rules: Optional[TransactionRules] = None
) -> TransactionDecision:
    """
    Decide whether a business transaction is approved.

    Admins are always approved; everyone else is approved when the cost is
    within the ceiling of the transaction's category (``default`` when
    not given).
    """
    rules = rules or TransactionRules()
    category = TransactionCategory(category or TransactionCategory.DEFAULT)

    if requester_is_admin:
        return TransactionDecision(approved=True, reason="Admin approval")

    if cost <= rules.ceiling_for(category):
        return TransactionDecision(approved=True, reason=APPROVAL_REASONS[category])

    return TransactionDecision(approved=False, reason="Transaction exceeds approval limit")


def protect_payment(payment: PaymentInfo, field_name: str) -> StoredPaymentInfo:
    """Validate bank identifiers, sanitize names and encrypt account numbers"""
    stored_bank = None
    bank = payment.bank_details

    if bank is not None:
        if payment.type == PaymentType.BANK_ACCOUNT and bank.routing_number is not None \
                and not validate_routing_number(bank.routing_number):
            raise ValidationError("Invalid routing number", field=f"{field_name}.bank_details.routing_number")
        if bank.sort_code is not None and not validate_sort_code(bank.sort_code):
            raise ValidationError("Invalid sort code", field=f"{field_name}.bank_details.sort_code")
        if bank.iban_number is not None and not validate_iban(bank.iban_number):
            raise ValidationError("Invalid IBAN", field=f"{field_name}.bank_details.iban_number")

        stored_bank = StoredBankDetails(
            account_number=encrypt(bank.account_number),
            routing_number=encrypt(bank.routing_number) if bank.routing_number else None,
            sort_code=encrypt(bank.sort_code) if bank.sort_code else None,
            bank_name=sanitize_input(bank.bank_name) if bank.bank_name else None,
            account_type=bank.account_type,
            account_holder_name=sanitize_input(bank.account_holder_name),
            swift_code=encrypt(bank.swift_code) if bank.swift_code else None,
            iban_number=encrypt(bank.iban_number.replace(" ", "")) if bank.iban_number else None,
        )

    return StoredPaymentInfo(
        type=payment.type,
        token=payment.token,
        last4=payment.last4,
        bank_details=stored_bank,
        receive_payments_to=payment.receive_payments_to,
        receive_payments_details=sanitize_input(payment.receive_payments_details),
    )


class OrganizationService:
    """
    Organization operations over the repository collaborators.

    Every public method runs inside a persistence boundary, so storage
    faults reach callers as InternalError.
    """

    def __init__(self, repositories: Repositories, rules: Optional[TransactionRules] = None):
        self.repos = repositories
        self.rules = rules or TransactionRules()

    async def _load(self, organization_id: str) -> Organization:
        org = await self.repos.organizations.get(organization_id)
        if org is None:
            raise not_found("Organization", organization_id)
        return org

    async def _load_for_member(self, organization_id: str, user_id: str) -> Organization:
        org = await self._load(organization_id)
        if not org.is_member(user_id):
            raise ForbiddenError("Access denied")
        return org

    async def create_organization(self, actor: User, data: OrganizationCreate) -> Organization:
        """Create an organization with ``actor`` as first employee and admin"""
        async with persistence_boundary("create_organization"):
            org = Organization(
                name=sanitize_input(data.name),
                country=sanitize_input(data.country),
                registration_number=sanitize_input(data.registration_number),
                address=sanitize_input(data.address),
                billing_account=protect_payment(data.billing_account, "billing_account"),
                receiving_account=protect_payment(data.receiving_account, "receiving_account"),
                employees=[actor.id],
                admin_users=[actor.id],
            )
            org.log(actor.id, "Organization created")
            await self.repos.organizations.add(org)

            actor.organization_id = org.id
            actor.is_business_account = True
            await self.repos.users.update(actor)

        logger.info(f"🏢 Organization {org.id[:8]}... created by {actor.id[:8]}...")
        return org

    async def get_organization(self, organization_id: str, actor_id: str) -> Organization:
        async with persistence_boundary("get_organization"):
            return await self._load_for_member(organization_id, actor_id)

    async def request_membership(self, organization_id: str, user_id: str) -> Organization:
        """
        Add ``user_id`` to the pending requests.

        Raises:
            NotFoundError: organization does not exist
            ConflictError: already a member or already pending
        """
        async with persistence_boundary("request_membership"):
            org = await self._load(organization_id)

            if org.is_member(user_id):
                raise ConflictError("Already a member")
            if user_id in org.employee_requests:
                raise ConflictError("Request already pending")

            org.employee_requests.append(user_id)
            org.log(user_id, "Employee request submitted")
            await self.repos.organizations.update(org)

        logger.info(f"📨 Membership requested for {organization_id[:8]}... by {user_id[:8]}...")
        return org

    async def resolve_membership(
        self,
        organization_id: str,
        employee_id: str,
        action: MembershipAction,
        actor_id: str
    ) -> Organization:
        """
        Approve or reject a pending membership request.

        Raises:
            NotFoundError: organization or pending request does not exist
            ForbiddenError: ``actor_id`` is not an employee
        """
        action = MembershipAction(action)

        async with persistence_boundary("resolve_membership"):
            org = await self._load_for_member(organization_id, actor_id)

            if employee_id not in org.employee_requests:
                raise not_found("Employee request", employee_id)

            org.employee_requests = [uid for uid in org.employee_requests if uid != employee_id]
            if action == MembershipAction.APPROVE and employee_id not in org.employees:
                org.employees.append(employee_id)

            org.log(actor_id, f"Employee request {action.value}d", details={"employee_id": employee_id})
            await self.repos.organizations.update(org)

            if action == MembershipAction.APPROVE:
                employee = await self.repos.users.get(employee_id)
                if employee is not None:
                    employee.organization_id = org.id
                    employee.is_business_account = True
                    await self.repos.users.update(employee)

        logger.info(f"👥 Membership of {employee_id[:8]}... {action.value}d by {actor_id[:8]}...")
        return org

    async def verify_transaction(self, actor_id: str, request: VerifyTransactionRequest) -> TransactionResult:
        """Evaluate a business transaction and record the outcome in the activity log"""
        organization_id = str(request.organization_id)
        description = sanitize_input(request.description)

        async with persistence_boundary("verify_transaction"):
            org = await self._load_for_member(organization_id, actor_id)

            is_admin = org.is_admin(actor_id)
            decision = evaluate_transaction(request.cost, request.category, is_admin, self.rules)

            entry = org.log(
                actor_id,
                f"{TRANSACTION_ACTION_PREFIX} {'approved' if decision.approved else 'rejected'}",
                cost=request.cost,
                details={
                    "category": request.category.value,
                    "description": description,
                    "approval_reason": decision.reason,
                    "is_admin_action": is_admin,
                }
            )
            await self.repos.organizations.update(org)

        return TransactionResult(
            approved=decision.approved,
            reason=decision.reason,
            transaction_id=generate_secure_token(16),
            timestamp=entry.timestamp,
            details={
                "category": request.category.value,
                "cost": request.cost,
                "description": description,
            }
        )

    async def transaction_history(
        self,
        organization_id: str,
        actor_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        category: Optional[TransactionCategory] = None
    ) -> TransactionHistory:
        async with persistence_boundary("transaction_history"):
            org = await self._load_for_member(organization_id, actor_id)

        start_date = _as_utc(start_date)
        end_date = _as_utc(end_date)

        transactions = [e for e in org.activity_log if e.action.startswith(TRANSACTION_ACTION_PREFIX)]
        if start_date:
            transactions = [t for t in transactions if t.timestamp >= start_date]
        if end_date:
            transactions = [t for t in transactions if t.timestamp <= end_date]
        if category:
            transactions = [t for t in transactions if (t.details or {}).get("category") == category.value]

        stats = TransactionStats(
            total=len(transactions),
            approved=sum(1 for t in transactions if t.action.endswith("approved")),
            rejected=sum(1 for t in transactions if t.action.endswith("rejected")),
            total_amount=sum(t.cost or 0 for t in transactions),
        )
        return TransactionHistory(transactions=transactions, stats=stats)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
