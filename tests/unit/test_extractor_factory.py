from unittest.mock import patch

import pytest

from app.config.settings import Settings
from app.extraction.base import BaseExtractor
from app.extraction.extractor import Extractor
from app.extraction.factory import ExtractorFactory


class TestExtractorFactory:
    def test_creates_offline_extractor_for_example_provider(self) -> None:
        extractor = ExtractorFactory.create(Settings(extraction_provider="example"))
        assert isinstance(extractor, BaseExtractor)
        fragment = extractor.extract_chunk("Sign here: [Signature]", 0, set())
        assert fragment is not None
        assert fragment.keys == ["signature"]

    def test_creates_extractor(self) -> None:
        settings = Settings(
            extraction_provider="openai",
            extraction_openai_api_key="test-key",
            extraction_openai_model_name="gpt-4o",
        )
        with patch("app.extraction.factory.OpenAIClientAdapter"):
            extractor = ExtractorFactory.create(settings)
        assert isinstance(extractor, Extractor)

    def test_uses_openai_settings(self) -> None:
        settings = Settings(
            extraction_provider="openai",
            extraction_openai_api_key="openai-key",
            extraction_openai_timeout_seconds=42,
        )
        with patch("app.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="openai-key",
            timeout_seconds=42,
            base_url=None,
        )

    def test_uses_provider_default_base_url_for_groq(self) -> None:
        settings = Settings(
            extraction_provider="groq",
            extraction_groq_api_key="k",
            extraction_groq_model_name="llama",
        )
        with patch("app.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="k",
            timeout_seconds=60,
            base_url="https://api.groq.com/openai/v1",
        )

    def test_ollama_defaults(self) -> None:
        settings = Settings(extraction_provider="ollama", extraction_ollama_model_name="llama3")
        with patch("app.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="ollama",
            timeout_seconds=120,
            base_url="http://localhost:11434/v1",
        )

    def test_uses_custom_base_url_for_openai_compatible(self) -> None:
        settings = Settings(
            extraction_provider="openai_compatible",
            extraction_openai_compatible_api_key="k",
            extraction_openai_compatible_model_name="m",
            extraction_openai_compatible_base_url="https://example.com/v1",
        )
        with patch("app.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="k",
            timeout_seconds=60,
            base_url="https://example.com/v1",
        )

    def test_openai_compatible_requires_base_url(self) -> None:
        settings = Settings(
            extraction_provider="openai_compatible",
            extraction_openai_compatible_model_name="m",
        )
        with pytest.raises(ValueError, match="base_url is required"):
            ExtractorFactory.create(settings)

    def test_missing_model_name_raises(self) -> None:
        settings = Settings(extraction_provider="deepseek", extraction_deepseek_api_key="k")
        with (
            patch("app.extraction.factory.OpenAIClientAdapter"),
            pytest.raises(ValueError, match="model_name is required"),
        ):
            ExtractorFactory.create(settings)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown extraction provider"):
            ExtractorFactory.create(Settings(extraction_provider="nope"))

    def test_lists_supported_providers(self) -> None:
        providers = ExtractorFactory.supported_providers()
        assert providers[:3] == ["example", "openai", "openai_compatible"]
        assert "ollama" in providers
