from ..exceptions import UnsupportedProviderError
from ..models import Provider
from .base import AIProvider, AnthropicProvider, GoogleProvider
from .openai import OpenAIProvider

PROVIDERS: dict[Provider, type[AIProvider]] = {
    Provider.OPENAI: OpenAIProvider,
    Provider.ANTHROPIC: AnthropicProvider,
    Provider.GOOGLE: GoogleProvider,
}


def get_provider(provider: Provider | str, api_key: str) -> AIProvider:
    """Build the provider variant for ``provider`` with a user's API key.

    Raises:
        UnsupportedProviderError: If ``provider`` is not a known provider.
    """
    try:
        provider = Provider(provider)
    except ValueError:
        raise UnsupportedProviderError(
            f"Unsupported provider: {provider}", provider=str(provider),
        ) from None
    return PROVIDERS[provider](api_key)


__all__ = [
    "AIProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "PROVIDERS",
    "get_provider",
]
