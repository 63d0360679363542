"""Offline extraction client.

Finds bracketed tokens such as ``[Company Name]`` with a regular expression
instead of calling a model. Useful for local development and tests, and as a
reference when adding a provider: implement BaseExtractionClient and register
the provider in ExtractorFactory.
"""

import json
import re

from app.extraction.client_base import BaseExtractionClient

_TOKEN = re.compile(r"\[[^\[\]\n]{1,80}\]")
_CHUNK_BODY = re.compile(r'"""\n(.*)\n"""', re.DOTALL)


class ExampleClientAdapter(BaseExtractionClient):
    """Deterministic adapter that treats every ``[...]`` token as a placeholder."""

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, json_schema
        match = _CHUNK_BODY.search(user_prompt)
        text = match.group(1) if match else user_prompt
        return json.dumps(self._scan(text))

    @staticmethod
    def _scan(text: str) -> dict[str, list[dict[str, object]]]:
        nodes: list[dict[str, object]] = []
        placeholders: list[dict[str, object]] = []
        cursor = 0
        for token in _TOKEN.finditer(text):
            if token.start() > cursor:
                nodes.append(_text_node(text[cursor : token.start()]))
            raw = token.group(0)
            key = raw.strip("[]").strip()
            nodes.append(
                {"type": "placeholder", "content": None, "key": key, "raw": raw}
            )
            placeholders.append(
                {
                    "key": key,
                    "raw": raw,
                    "description": key[:30],
                    "type": "STRING",
                    "required": True,
                    "value": None,
                    "surrounding_text": text[max(0, token.start() - 40) : token.end() + 40],
                }
            )
            cursor = token.end()
        if cursor < len(text):
            nodes.append(_text_node(text[cursor:]))
        return {"content_nodes": nodes, "placeholders": placeholders}


def _text_node(content: str) -> dict[str, object]:
    return {"type": "text", "content": content, "key": None, "raw": None}
