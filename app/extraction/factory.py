from typing import Any, ClassVar

from app.config.settings import Settings
from app.extraction.base import BaseExtractor
from app.extraction.example_client_adapter import ExampleClientAdapter
from app.extraction.extractor import Extractor
from app.extraction.openai_client_adapter import OpenAIClientAdapter


class ExtractorFactory:
    """Creates the configured chunk extractor."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseExtractor:
        """Create a configured extractor from application settings."""
        provider = settings.extraction_provider.lower()
        if provider == "example":
            return Extractor(
                client=ExampleClientAdapter(),
                model="example",
                temperature=0.0,
            )
        base_url = cls._resolve_base_url(provider, settings)
        client = OpenAIClientAdapter(
            api_key=cls._provider_setting(provider, settings, "api_key", ""),
            timeout_seconds=cls._provider_setting(provider, settings, "timeout_seconds", 60),
            base_url=base_url,
        )
        model = cls._provider_setting(provider, settings, "model_name", "")
        if not model:
            raise ValueError(f"extraction_{provider}_model_name is required")
        return Extractor(
            client=client,
            model=model,
            temperature=settings.extraction_openai_temperature if provider == "openai" else 0.0,
        )

    @classmethod
    def supported_providers(cls) -> list[str]:
        return ["example", "openai", "openai_compatible", *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS)]

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.extraction_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "extraction_openai_compatible_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        raise ValueError(
            f"Unknown extraction provider '{provider}'. "
            f"Choose from: {cls.supported_providers()}"
        )

    @staticmethod
    def _provider_setting(provider: str, settings: Settings, name: str, default: Any) -> Any:
        return getattr(settings, f"extraction_{provider}_{name}", default) or default
