from fastapi import APIRouter, Depends, status
from typing import List

from contracthub.middleware.auth import get_current_user
from contracthub.models.contract import Contract, ContractCreate, GenerateContractRequest
from contracthub.services.container import Services, get_services

router = APIRouter(
    prefix="/api/contracts",
    tags=["Contracts"],
    dependencies=[Depends(get_current_user)]
)


@router.post("/generate", response_model=Contract, status_code=status.HTTP_201_CREATED)
async def generate_contract(body: GenerateContractRequest, services: Services = Depends(get_services)):
    """
    Draft a Solidity contract from a plain-language description.

    The draft is validated statically and stored whether or not it passes;
    ``is_valid`` and ``validation_results`` tell the client what to fix.
    """
    return await services.contracts.generate_contract(body.prompt)


@router.post("", response_model=Contract, status_code=status.HTTP_201_CREATED)
async def create_contract(body: ContractCreate, services: Services = Depends(get_services)):
    return await services.contracts.create_contract(body)


@router.get("", response_model=List[Contract])
async def list_contracts(services: Services = Depends(get_services)):
    return await services.contracts.list_contracts()


@router.get("/{contract_id}", response_model=Contract)
async def get_contract(contract_id: int, services: Services = Depends(get_services)):
    return await services.contracts.get_contract(contract_id)
