"""AI-powered placeholder extraction for one chunk of document text."""

import json
from pathlib import Path

from app.extraction.base import BaseExtractor
from app.extraction.client_base import BaseExtractionClient
from app.extraction.exceptions import ExtractionError
from app.extraction.prompt_loader import load_json_schema, load_prompt_template
from app.extraction.validator import validate_and_build
from app.logging.logger import Log
from app.templates.models import PLACEHOLDER_TYPES, Template

DEFAULT_SYSTEM_PROMPT = (
    "You transform raw legal template text into structured placeholder metadata "
    "used for auto-filling documents. Only return valid JSON for the schema provided. "
    "Keep keys snake_cased without spaces."
)


class Extractor(BaseExtractor):
    """Extracts a template fragment from a chunk using an AI provider."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        skip_blank_chunks: bool = False,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._skip_blank_chunks = skip_blank_chunks
        self._prompt_template = load_prompt_template(prompt_template_path)
        self._json_schema_dict = json.loads(load_json_schema(json_schema_path))

    def extract_chunk(
        self,
        chunk: str,
        chunk_index: int,
        used_keys: set[str],
        total_chunks: int = 1,
    ) -> Template | None:
        if self._skip_blank_chunks and not chunk.strip():
            Log.debug(f"Skipping blank chunk {chunk_index + 1}/{total_chunks}")
            return None

        prompt = self._build_prompt(chunk, chunk_index, used_keys, total_chunks)
        Log.debug(f"Extraction prompt for chunk {chunk_index}:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )
        Log.debug(f"AI raw response for chunk {chunk_index}:\n{raw_response}")

        fragment = validate_and_build(self._parse_json(raw_response), chunk_index)
        Log.info(
            f"Extracted chunk {chunk_index + 1}/{total_chunks}: "
            f"{len(fragment.placeholders)} placeholders"
        )
        return fragment

    def _build_prompt(
        self,
        chunk: str,
        chunk_index: int,
        used_keys: set[str],
        total_chunks: int,
    ) -> str:
        if total_chunks > 1:
            header = f"DOCUMENT CHUNK ({chunk_index + 1}/{total_chunks})"
        else:
            header = "DOCUMENT TEXT"
        return self._prompt_template.format(
            header=header,
            chunk_text=chunk,
            used_keys=", ".join(sorted(used_keys)) or "none",
            value_types=", ".join(sorted(PLACEHOLDER_TYPES)),
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed
