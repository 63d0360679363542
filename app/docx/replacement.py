import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from app.templates.models import Placeholder

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Replacement:
    """Candidate tokens for one placeholder occurrence and its fill value.

    Tokens are tried in order; the first one found in the document wins. A
    replacement without a value only claims its occurrence, so placeholders
    later in the list cannot take it.
    """

    tokens: list[str] = field(default_factory=list)
    value: str | None = None

    @property
    def is_claim(self) -> bool:
        return self.value is None


def build_match_tokens(placeholder: Placeholder) -> list[str]:
    """Ordered, de-duplicated strings that may appear in the source document.

    The current ``raw`` comes first so a renamed token written back into the
    original is preferred over the text it was first seen as.
    """
    candidates = [
        placeholder.raw,
        _WHITESPACE_RE.sub(" ", placeholder.raw).strip(),
        placeholder.original_raw,
        placeholder.original_raw.strip(),
        f"[{placeholder.key}]",
    ]
    tokens: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in tokens:
            tokens.append(candidate)
    return tokens


class TokenReplacer(ABC):
    """Strategy that substitutes placeholder tokens inside DOCX bytes."""

    @abstractmethod
    def replace(self, data: bytes, replacements: list[Replacement]) -> bytes:
        """Return new DOCX bytes with every located token replaced.

        Replacements are matched in list order, each consuming one occurrence.

        Raises:
            DocxRenderError: if the document cannot be rewritten.
            NoReplacementsAppliedError: if no token was located.
        """
