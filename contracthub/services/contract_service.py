# contracthub/services/contract_service.py
"""
Contract workflow: AI drafting, static validation and persistence.
"""
import re
import logging
from typing import List

from contracthub.core.exceptions import ValidationError, not_found
from contracthub.models.contract import Contract, ContractCreate, ValidationResults
from contracthub.prompts.contract_prompts import CONTRACT_SYSTEM_PROMPT, build_contract_prompt
from contracthub.services.gpt_service import GPTService
from contracthub.services.storage import Repositories, persistence_boundary

logger = logging.getLogger(__name__)

MIN_PROMPT_LENGTH = 10

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown fence if the model added one"""
    match = _CODE_FENCE.match(text.strip())
    return match.group(1).strip() if match else text.strip()


class ContractValidator:
    """Static checks over Solidity source. No compilation is attempted."""

    def validate(self, code: str) -> ValidationResults:
        errors: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []

        if not code or not code.strip():
            return ValidationResults(is_valid=False, errors=["Contract code is empty"])

        if not re.search(r"pragma\s+solidity", code):
            errors.append("Missing pragma solidity directive")

        if not re.search(r"\bcontract\s+[A-Za-z_]\w*", code):
            errors.append("Missing contract declaration")

        if code.count("{") != code.count("}"):
            errors.append("Unbalanced braces")

        if "SPDX-License-Identifier" not in code:
            warnings.append("Missing SPDX license identifier")

        if "tx.origin" in code:
            warnings.append("Use of tx.origin for authorization is unsafe; use msg.sender")

        if not re.search(r"\bevent\s+\w+", code):
            suggestions.append("Consider emitting events for state changes")

        if not re.search(r"\bconstructor\s*\(", code):
            suggestions.append("Consider adding an explicit constructor")

        return ValidationResults(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions
        )


class ContractService:

    def __init__(self, repositories: Repositories, gpt_service: GPTService, validator: ContractValidator = None):
        self.repos = repositories
        self.gpt = gpt_service
        self.validator = validator or ContractValidator()

    async def generate_contract(self, prompt: str) -> Contract:
        """
        Draft a contract with the GPT service, validate it and store it.

        Raises:
            ValidationError: prompt shorter than 10 characters
            GPTServiceError: the model call failed
        """
        if not prompt or len(prompt.strip()) < MIN_PROMPT_LENGTH:
            raise ValidationError(
                f"Prompt must be at least {MIN_PROMPT_LENGTH} characters",
                field="prompt"
            )

        raw = await self.gpt.complete(build_contract_prompt(prompt), system_prompt=CONTRACT_SYSTEM_PROMPT)
        code = strip_code_fence(raw)
        results = self.validator.validate(code)

        logger.info(
            f"📝 Contract drafted: valid={results.is_valid}, "
            f"{len(results.errors)} errors, {len(results.warnings)} warnings"
        )

        return await self.create_contract(ContractCreate(
            prompt=prompt.strip(),
            code=code,
            validation_results=results,
            is_valid=results.is_valid
        ))

    async def create_contract(self, data: ContractCreate) -> Contract:
        async with persistence_boundary("create_contract"):
            return await self.repos.contracts.create(data)

    async def get_contract(self, contract_id: int) -> Contract:
        async with persistence_boundary("get_contract"):
            contract = await self.repos.contracts.get(contract_id)
        if contract is None:
            raise not_found("Contract", contract_id)
        return contract

    async def list_contracts(self) -> List[Contract]:
        async with persistence_boundary("list_contracts"):
            return await self.repos.contracts.list()
