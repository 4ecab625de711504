# contracthub/models/contract.py

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field


class ValidationResults(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class ContractCreate(BaseModel):
    prompt: str = Field(min_length=1)
    code: str = Field(min_length=1)
    validation_results: ValidationResults
    is_valid: bool = False


class Contract(ContractCreate):
    id: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GenerateContractRequest(BaseModel):
    prompt: str = Field(min_length=10, max_length=5000)
