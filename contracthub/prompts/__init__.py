# contracthub/prompts/__init__.py
"""Prompts package - centralized prompt text for the GPT service"""

from . import contract_prompts

__all__ = [
    'contract_prompts'
]
