# contracthub/prompts/contract_prompts.py
"""
Contract generation prompts for ContractHub.

The model must answer with Solidity source only, so the response can be
stored and validated without post-processing beyond fence stripping.
"""

# ============================================================================
# SYSTEM PROMPT
# ============================================================================

CONTRACT_SYSTEM_PROMPT = """You are an experienced Solidity engineer.
Write a single, self-contained smart contract that implements the user's request.

Rules:
- Start with an SPDX license identifier comment.
- Declare the compiler version with `pragma solidity ^0.8.20;`.
- Emit events for every state change that matters to off-chain observers.
- Use `msg.sender` for authorization, never `tx.origin`.
- Include an explicit constructor.
- Answer with Solidity source code only. No explanations, no markdown."""

# ============================================================================
# USER PROMPT
# ============================================================================

CONTRACT_USER_PROMPT = """Create a smart contract for the following agreement:

{prompt}"""


def build_contract_prompt(prompt: str) -> str:
    """Wrap a user's agreement description in the generation template"""
    return CONTRACT_USER_PROMPT.format(prompt=prompt.strip())
