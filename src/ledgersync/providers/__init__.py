"""Provider adapters and the factory that picks one from settings."""

from ledgersync.config import Settings
from ledgersync.config import settings as default_settings
from ledgersync.providers.base import PayerParty, ProviderAdapter, RawProviderTransaction
from ledgersync.providers.momo import MomoProvider
from ledgersync.providers.sandbox import SandboxProvider

PROVIDER_MODES = ("sandbox", "live")


def get_provider(settings: Settings | None = None) -> ProviderAdapter:
    """Build the adapter selected by ``settings.provider_mode``."""
    settings = settings or default_settings
    mode = settings.provider_mode.lower()
    if mode == "live":
        return MomoProvider.from_settings(settings)
    if mode == "sandbox":
        return SandboxProvider(source=settings.provider_source, currency=settings.currency)
    raise ValueError(f"Unknown provider mode '{settings.provider_mode}', expected one of {PROVIDER_MODES}")


__all__ = [
    "MomoProvider",
    "PayerParty",
    "ProviderAdapter",
    "RawProviderTransaction",
    "SandboxProvider",
    "get_provider",
]
