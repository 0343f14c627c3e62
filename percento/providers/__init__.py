"""
Percento providers module.

This module provides abstractions for the LLM providers used to solve
word problems.
"""

from percento.providers.base import Provider, ProviderFactory, ProviderResponse

__all__ = ["Provider", "ProviderFactory", "ProviderResponse"]
