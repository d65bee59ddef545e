"""
Railway-oriented result types.
Following Railway programming patterns with Success/Failure variants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar('T')
E = TypeVar('E')


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful operation result."""
    value: T


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Failed operation result."""
    error: E


# Type alias for Railway Result
Result = Success[T] | Failure[E]
