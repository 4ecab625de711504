# contracthub/services/storage.py
"""
Persistence collaborator.

Repository interfaces for users, organizations and contracts, plus
in-memory implementations used in development and tests. A relational
implementation only has to honour these interfaces and raise
StorageError on driver faults.

Records are copied on the way in and out so callers never share state
with the store; changes become visible only through ``update``.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from contracthub.core.exceptions import InternalError, StorageError
from contracthub.models.contract import Contract, ContractCreate
from contracthub.models.organization import Organization
from contracthub.models.user import User

logger = logging.getLogger(__name__)


class UserRepository(ABC):

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def add(self, user: User) -> User:
        ...

    @abstractmethod
    async def update(self, user: User) -> User:
        ...


class OrganizationRepository(ABC):

    @abstractmethod
    async def get(self, organization_id: str) -> Optional[Organization]:
        ...

    @abstractmethod
    async def add(self, organization: Organization) -> Organization:
        ...

    @abstractmethod
    async def update(self, organization: Organization) -> Organization:
        ...


class ContractRepository(ABC):

    @abstractmethod
    async def create(self, contract: ContractCreate) -> Contract:
        ...

    @abstractmethod
    async def get(self, contract_id: int) -> Optional[Contract]:
        ...

    @abstractmethod
    async def list(self) -> List[Contract]:
        ...


class InMemoryUserRepository(UserRepository):

    def __init__(self):
        self._users: Dict[str, User] = {}

    async def get(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        for user in self._users.values():
            if user.email and user.email.lower() == wanted:
                return user.model_copy(deep=True)
        return None

    async def add(self, user: User) -> User:
        if user.id in self._users:
            raise StorageError(f"User {user.id} already exists", operation="insert")
        self._users[user.id] = user.model_copy(deep=True)
        return user

    async def update(self, user: User) -> User:
        if user.id not in self._users:
            raise StorageError(f"User {user.id} does not exist", operation="update")
        self._users[user.id] = user.model_copy(deep=True)
        return user


class InMemoryOrganizationRepository(OrganizationRepository):

    def __init__(self):
        self._organizations: Dict[str, Organization] = {}

    async def get(self, organization_id: str) -> Optional[Organization]:
        org = self._organizations.get(organization_id)
        return org.model_copy(deep=True) if org else None

    async def add(self, organization: Organization) -> Organization:
        if organization.id in self._organizations:
            raise StorageError(f"Organization {organization.id} already exists", operation="insert")
        self._organizations[organization.id] = organization.model_copy(deep=True)
        return organization

    async def update(self, organization: Organization) -> Organization:
        if organization.id not in self._organizations:
            raise StorageError(f"Organization {organization.id} does not exist", operation="update")
        self._organizations[organization.id] = organization.model_copy(deep=True)
        return organization


class InMemoryContractRepository(ContractRepository):

    def __init__(self):
        self._contracts: Dict[int, Contract] = {}
        self._current_id = 1

    async def create(self, contract: ContractCreate) -> Contract:
        created = Contract(id=self._current_id, **contract.model_dump())
        self._current_id += 1
        self._contracts[created.id] = created
        return created.model_copy(deep=True)

    async def get(self, contract_id: int) -> Optional[Contract]:
        contract = self._contracts.get(contract_id)
        return contract.model_copy(deep=True) if contract else None

    async def list(self) -> List[Contract]:
        return [c.model_copy(deep=True) for c in self._contracts.values()]


@dataclass
class Repositories:
    users: UserRepository = field(default_factory=InMemoryUserRepository)
    organizations: OrganizationRepository = field(default_factory=InMemoryOrganizationRepository)
    contracts: ContractRepository = field(default_factory=InMemoryContractRepository)


@asynccontextmanager
async def persistence_boundary(operation: str):
    """
    Remap persistence faults to InternalError.

    Usage:
        async with persistence_boundary("request_membership"):
            org = await repo.get(org_id)
    """
    try:
        yield
    except StorageError as e:
        logger.error(f"Storage failure during {operation}: {e}", exc_info=True)
        raise InternalError(f"Failed to {operation.replace('_', ' ')}") from e
