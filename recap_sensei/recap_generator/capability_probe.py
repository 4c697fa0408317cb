"""
Capability probing.

Decides, before any stage runs, whether the general text-generation
capability is usable, and answers whether the optional specialized
capabilities (summarizer, writer) exist.
"""

from ..ai_models.provider_registry import (
    CapabilityKind,
    ProviderRegistry,
    SessionOptions,
    provider_session,
)
from ..utils.logger_utils import setup_logging
from .exceptions.recap_exceptions import ModelNotReady, ProviderUnavailable

logger = setup_logging(__name__)


class CapabilityProbe:
    """Availability checks against a ProviderRegistry."""

    def __init__(self, registry: ProviderRegistry, session_options: SessionOptions = SessionOptions()):
        self._registry = registry
        self._session_options = session_options

    async def check_base_availability(self) -> None:
        """
        Gate a run on the general capability.

        Raises:
            ProviderUnavailable: The general capability does not exist.
            ModelNotReady: It exists, but a trial session could not be created
                or its model did not answer.
        """
        if not self._registry.has_general():
            logger.error("❌ General text-generation capability is not available")
            raise ProviderUnavailable()

        try:
            async with provider_session(self._registry.create_session, self._session_options) as session:
                await session.warm_up()
        except Exception as e:
            logger.error(f"❌ Trial session failed: {e}")
            raise ModelNotReady(original_error=e) from e

        logger.info("✅ Text-generation provider ready")

    def probe_specialized(self, kind: CapabilityKind) -> bool:
        """Whether an optional capability is constructible. Never raises."""
        try:
            available = bool(self._registry.has_capability(kind))
        except Exception as e:
            logger.debug(f"Probing {kind.value} raised {type(e).__name__}: {e}; treating as absent")
            return False

        logger.debug(f"🔍 {kind.value} capability available: {available}")
        return available
