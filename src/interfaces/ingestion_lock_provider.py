"""Abstract base class for per-radicado ingestion claims.

The existence check done before ingestion is not atomic with the inserts
that follow it.  A claim closes that gap: only the holder of a radicado's
claim may write chunks for it, and a second concurrent caller sees
"in progress" instead of racing to insert overlapping ``chunk_index``
ranges.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: SQLiteIngestionLockProvider (src/providers/lock/)
class IIngestionLockProvider(ABC):
    """Contract for insert-if-absent claims keyed by radicado."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing storage if needed.  Safe to call repeatedly."""

    @abstractmethod
    async def acquire(self, radicado: str, owner: str) -> bool:
        """Try to claim *radicado* for *owner*.

        Returns
        -------
        bool
            ``True`` if the claim is now held by *owner*; ``False`` if
            another owner holds a live (non-stale) claim.
        """

    @abstractmethod
    async def release(self, radicado: str, owner: str) -> None:
        """Drop the claim on *radicado* if, and only if, *owner* holds it."""

    @abstractmethod
    async def is_claimed(self, radicado: str) -> bool:
        """Return ``True`` if any live claim exists for *radicado*."""
