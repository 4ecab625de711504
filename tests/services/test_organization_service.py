# tests/services/test_organization_service.py
"""
Tests for organization creation, the membership workflow and transaction
approval.
"""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from contracthub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError
)
from contracthub.core.security.credentials import decrypt
from contracthub.models.organization import (
    MembershipAction,
    OrganizationCreate,
    TransactionCategory,
    VerifyTransactionRequest
)
from contracthub.services.organization_service import (
    OrganizationService,
    TransactionRules,
    evaluate_transaction
)


def organization_payload(routing_number="021000021", **overrides):
    bank_account = {
        "type": "bank_account",
        "token": "tok_billing",
        "bank_details": {
            "account_number": "123456789012",
            "routing_number": routing_number,
            "bank_name": "First Bank",
            "account_type": "checking",
            "account_holder_name": "Acme Holdings",
        },
        "receive_payments_to": "bank_account",
        "receive_payments_details": "Acme operating account",
    }
    paypal = {
        "type": "paypal",
        "token": "tok_receiving",
        "receive_payments_to": "paypal",
        "receive_payments_details": "billing@acme.example",
    }
    data = {
        "name": "Acme <Corp>",
        "country": "US",
        "registration_number": "REG-001",
        "address": "1 Main Street, Springfield",
        "billing_account": bank_account,
        "receiving_account": paypal,
    }
    data.update(overrides)
    return data


@pytest.fixture
def service(repositories):
    return OrganizationService(repositories)


@pytest.fixture
async def organization(service, alice):
    return await service.create_organization(alice, OrganizationCreate(**organization_payload()))


def transaction(org, cost, category=TransactionCategory.DEFAULT, description="Office chairs"):
    return VerifyTransactionRequest(
        organization_id=org.id,
        cost=cost,
        description=description,
        category=category
    )


class TestEvaluateTransaction:

    def test_standard_within_limit(self):
        decision = evaluate_transaction(5000, TransactionCategory.DEFAULT, False)

        assert decision.approved
        assert decision.reason == "Standard transaction within limit"

    def test_standard_over_limit(self):
        decision = evaluate_transaction(20000, TransactionCategory.DEFAULT, False)

        assert not decision.approved
        assert decision.reason == "Transaction exceeds approval limit"

    def test_emergency_has_higher_ceiling(self):
        decision = evaluate_transaction(20000, TransactionCategory.EMERGENCY, False)

        assert decision.approved
        assert decision.reason == "Emergency transaction within limit"

    def test_recurring_ceiling(self):
        assert evaluate_transaction(15000, "recurring", False).approved
        assert not evaluate_transaction(15000.01, "recurring", False).approved

    def test_admin_always_approved(self):
        decision = evaluate_transaction(1_000_000, TransactionCategory.DEFAULT, True)

        assert decision.approved
        assert decision.reason == "Admin approval"

    def test_category_defaults(self):
        assert evaluate_transaction(10000).approved
        assert not evaluate_transaction(10000.5).approved

    def test_custom_rules(self):
        rules = TransactionRules(ceilings={
            TransactionCategory.DEFAULT: 100,
            TransactionCategory.EMERGENCY: 200,
            TransactionCategory.RECURRING: 150,
        })

        assert not evaluate_transaction(101, TransactionCategory.DEFAULT, False, rules).approved
        assert evaluate_transaction(199, TransactionCategory.EMERGENCY, False, rules).approved


class TestCreateOrganization:

    async def test_creator_becomes_admin_employee(self, service, repositories, alice, organization):
        assert organization.employees == [alice.id]
        assert organization.admin_users == [alice.id]
        assert organization.activity_log[0].action == "Organization created"
        assert organization.name == "Acme Corp"

        stored_user = await repositories.users.get(alice.id)
        assert stored_user.is_business_account
        assert stored_user.organization_id == organization.id

    async def test_bank_numbers_are_encrypted(self, organization):
        bank = organization.billing_account.bank_details

        assert bank.account_number != "123456789012"
        assert json.loads(bank.account_number).keys() == {"content", "iv", "tag"}
        assert decrypt(bank.account_number) == "123456789012"
        assert decrypt(bank.routing_number) == "021000021"

    async def test_blacklisted_routing_number_rejected(self, service, alice):
        data = OrganizationCreate(**organization_payload())
        data.billing_account.bank_details.routing_number = "111111111"

        with pytest.raises(ValidationError) as exc_info:
            await service.create_organization(alice, data)

        assert exc_info.value.field == "billing_account.bank_details.routing_number"

    def test_checksum_failure_rejected_by_model(self):
        with pytest.raises(PydanticValidationError):
            OrganizationCreate(**organization_payload(routing_number="021000022"))

    async def test_get_organization_requires_membership(self, service, organization, bob):
        with pytest.raises(ForbiddenError):
            await service.get_organization(organization.id, bob.id)

    async def test_get_missing_organization(self, service, alice):
        with pytest.raises(NotFoundError):
            await service.get_organization(str(uuid4()), alice.id)


class TestMembership:

    async def test_request_is_recorded(self, service, organization, bob):
        org = await service.request_membership(organization.id, bob.id)

        assert org.employee_requests == [bob.id]
        assert org.activity_log[-1].action == "Employee request submitted"
        assert org.activity_log[-1].employee_id == bob.id

    async def test_second_request_conflicts(self, service, organization, bob):
        await service.request_membership(organization.id, bob.id)

        with pytest.raises(ConflictError) as exc_info:
            await service.request_membership(organization.id, bob.id)

        assert exc_info.value.status_code == 409

    async def test_member_cannot_request(self, service, organization, alice):
        with pytest.raises(ConflictError):
            await service.request_membership(organization.id, alice.id)

    async def test_request_for_missing_organization(self, service, bob):
        with pytest.raises(NotFoundError):
            await service.request_membership(str(uuid4()), bob.id)

    async def test_approve_moves_request_to_employees(self, service, repositories, organization, alice, bob):
        await service.request_membership(organization.id, bob.id)

        org = await service.resolve_membership(organization.id, bob.id, MembershipAction.APPROVE, alice.id)

        assert org.employees.count(bob.id) == 1
        assert bob.id not in org.employee_requests
        assert org.activity_log[-1].action == "Employee request approved"
        assert org.activity_log[-1].employee_id == alice.id

        stored_bob = await repositories.users.get(bob.id)
        assert stored_bob.organization_id == organization.id

    async def test_reject_only_removes_request(self, service, repositories, organization, alice, bob):
        await service.request_membership(organization.id, bob.id)

        org = await service.resolve_membership(organization.id, bob.id, "reject", alice.id)

        assert bob.id not in org.employees
        assert bob.id not in org.employee_requests
        assert org.activity_log[-1].action == "Employee request rejected"
        assert (await repositories.users.get(bob.id)).organization_id is None

    async def test_approving_nonexistent_request(self, service, organization, alice, bob):
        with pytest.raises(NotFoundError):
            await service.resolve_membership(organization.id, bob.id, MembershipAction.APPROVE, alice.id)

    async def test_non_employee_cannot_resolve(self, service, organization, bob, user_factory):
        carol = await user_factory("carol@example.com")
        await service.request_membership(organization.id, bob.id)

        with pytest.raises(ForbiddenError):
            await service.resolve_membership(organization.id, bob.id, MembershipAction.APPROVE, carol.id)

    async def test_storage_fault_becomes_internal_error(self, service, repositories, organization, bob):
        repositories.organizations.update = AsyncMock(side_effect=StorageError("disk full", operation="update"))

        with pytest.raises(InternalError) as exc_info:
            await service.request_membership(organization.id, bob.id)

        assert not isinstance(exc_info.value, StorageError)
        assert exc_info.value.message == "Failed to request membership"


class TestVerifyTransaction:

    async def test_admin_transaction_approved(self, service, organization, alice):
        result = await service.verify_transaction(alice.id, transaction(organization, 50000))

        assert result.approved
        assert result.reason == "Admin approval"
        assert len(result.transaction_id) == 32

    async def test_employee_transaction_checked_against_ceiling(self, service, organization, alice, bob):
        await service.request_membership(organization.id, bob.id)
        await service.resolve_membership(organization.id, bob.id, "approve", alice.id)

        approved = await service.verify_transaction(bob.id, transaction(organization, 5000))
        rejected = await service.verify_transaction(bob.id, transaction(organization, 20000))
        emergency = await service.verify_transaction(
            bob.id, transaction(organization, 20000, TransactionCategory.EMERGENCY)
        )

        assert approved.approved
        assert not rejected.approved
        assert emergency.approved

    async def test_outcome_is_logged(self, service, repositories, organization, alice):
        await service.verify_transaction(alice.id, transaction(organization, 120.5, description="<Lunch>"))

        org = await repositories.organizations.get(organization.id)
        entry = org.activity_log[-1]
        assert entry.action == "Business transaction approved"
        assert entry.cost == 120.5
        assert entry.details["description"] == "Lunch"
        assert entry.details["is_admin_action"] is True

    async def test_non_member_forbidden(self, service, organization, bob):
        with pytest.raises(ForbiddenError):
            await service.verify_transaction(bob.id, transaction(organization, 10))

    def test_request_validation(self):
        with pytest.raises(PydanticValidationError):
            VerifyTransactionRequest(organization_id=uuid4(), cost=-5, description="x")
        with pytest.raises(PydanticValidationError):
            VerifyTransactionRequest(organization_id=uuid4(), cost=float("inf"), description="x")
        with pytest.raises(PydanticValidationError):
            VerifyTransactionRequest(organization_id=uuid4(), cost=5, description="")
        with pytest.raises(PydanticValidationError):
            VerifyTransactionRequest(organization_id=uuid4(), cost=5, description="x", category="urgent")


class TestTransactionHistory:

    async def test_history_and_stats(self, service, organization, alice, bob):
        await service.request_membership(organization.id, bob.id)
        await service.resolve_membership(organization.id, bob.id, "approve", alice.id)
        await service.verify_transaction(bob.id, transaction(organization, 5000))
        await service.verify_transaction(bob.id, transaction(organization, 20000))
        await service.verify_transaction(bob.id, transaction(organization, 20000, TransactionCategory.EMERGENCY))

        history = await service.transaction_history(organization.id, alice.id)

        assert history.stats.total == 3
        assert history.stats.approved == 2
        assert history.stats.rejected == 1
        assert history.stats.total_amount == 45000
        assert all(t.action.startswith("Business transaction") for t in history.transactions)

    async def test_history_filters(self, service, organization, alice):
        await service.verify_transaction(alice.id, transaction(organization, 100))
        await service.verify_transaction(alice.id, transaction(organization, 200, TransactionCategory.RECURRING))

        recurring = await service.transaction_history(
            organization.id, alice.id, category=TransactionCategory.RECURRING
        )
        future = await service.transaction_history(
            organization.id, alice.id, start_date=datetime.now(timezone.utc) + timedelta(days=1)
        )

        assert recurring.stats.total == 1
        assert recurring.stats.total_amount == 200
        assert future.stats.total == 0
