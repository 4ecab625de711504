from fastapi import APIRouter, Depends, Query, status
from datetime import datetime
from typing import Optional

from contracthub.middleware.auth import get_current_user
from contracthub.models.organization import (
    MembershipResolution,
    Organization,
    OrganizationCreate,
    TransactionCategory,
    TransactionHistory,
    TransactionResult,
    VerifyTransactionRequest
)
from contracthub.models.user import User
from contracthub.services.container import Services, get_services

router = APIRouter(prefix="/api/organizations", tags=["Organizations"])


@router.post("", response_model=Organization, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationCreate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await services.organizations.create_organization(user, body)


@router.post("/verify-transaction", response_model=TransactionResult)
async def verify_transaction(
    body: VerifyTransactionRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Approve or reject a business transaction against the organization's
    rules. The decision is recorded in the activity log either way.
    """
    return await services.organizations.verify_transaction(user.id, body)


@router.get("/{organization_id}", response_model=Organization)
async def get_organization(
    organization_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await services.organizations.get_organization(organization_id, user.id)


async def _request_membership(organization_id: str, user: User, services: Services):
    org = await services.organizations.request_membership(organization_id, user.id)
    return {"message": "Employee request submitted", "organization_id": org.id}


@router.post("/{organization_id}/employees/request")
async def request_membership(
    organization_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await _request_membership(organization_id, user, services)


@router.post("/{organization_id}/join")
async def join_organization(
    organization_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await _request_membership(organization_id, user, services)


@router.post("/{organization_id}/employees/{employee_id}")
async def resolve_membership(
    organization_id: str,
    employee_id: str,
    body: MembershipResolution,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    org = await services.organizations.resolve_membership(organization_id, employee_id, body.action, user.id)
    return {
        "message": f"Employee request {body.action.value}d",
        "employees": org.employees,
        "employee_requests": org.employee_requests
    }


@router.get("/{organization_id}/transactions", response_model=TransactionHistory)
async def transaction_history(
    organization_id: str,
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    category: Optional[TransactionCategory] = Query(default=None),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await services.organizations.transaction_history(
        organization_id, user.id, start_date=start_date, end_date=end_date, category=category
    )
