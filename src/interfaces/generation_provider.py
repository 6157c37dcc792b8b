"""Abstract base class for contrarreferencia text-generation providers.

The generation endpoint receives the assembled document text and an
optional specialty and returns the generated response.  Rate limiting is
reported to the caller, never retried by the provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: HttpGenerationProvider (src/providers/generation/)
class IGenerationProvider(ABC):
    """Contract for the external text-generation endpoint."""

    @abstractmethod
    async def generate(self, text_context: str, specialty: str) -> str:
        """Generate the contrarreferencia for *text_context*.

        Parameters
        ----------
        text_context:
            The full reconstructed document text.
        specialty:
            Destination specialty, or a placeholder when unknown.

        Returns
        -------
        str
            The generated text.

        Raises
        ------
        src.utils.errors.GenerationProviderError
            On any failure.  For HTTP 429 the error carries
            ``retry_after_seconds``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the endpoint is configured."""
