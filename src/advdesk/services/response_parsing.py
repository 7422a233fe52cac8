"""
Decoding of model responses.

Models wrap JSON in prose or code fences and sometimes drop the space after
a heading marker; these helpers recover the payload or fail with a stage error.
"""

import json
import re
from typing import Any

from advdesk.errors import GenerationFailed, StageError

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?|\n?\s*```\s*$")
_HEADING_RE = re.compile(r"^(#{1,2})(?=[^#\s])", re.MULTILINE)
_HAS_HEADING_RE = re.compile(r"^#{1,2} \S", re.MULTILINE)


def strip_code_fences(text: str) -> str:
    """Remove a leading and trailing markdown code fence."""
    return _FENCE_RE.sub("", text.strip()).strip()


def find_json_object(text: str) -> str | None:
    """
    Return the first balanced ``{...}`` block in `text`.

    Braces inside JSON strings (including escaped quotes) are ignored. A
    ``{`` that never closes is skipped and the scan resumes at the next one,
    so ``Formato {campo. {"a": 1}`` yields ``{"a": 1}``.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find("{", start + 1)
    return None


def extract_json_object(
    text: str,
    error_cls: type[StageError] = GenerationFailed,
) -> dict[str, Any]:
    """Parse the first JSON object embedded in a model response."""
    cleaned = strip_code_fences(text or "")
    try:
        value = json.loads(cleaned)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        pass

    block = find_json_object(cleaned)
    if block is None:
        raise error_cls("Resposta do modelo sem JSON válido.")
    try:
        value = json.loads(block)
    except json.JSONDecodeError as e:
        raise error_cls("Resposta do modelo com JSON inválido.") from e
    if not isinstance(value, dict):
        raise error_cls("Resposta do modelo com JSON inválido.")
    return value


def normalize_petition_text(text: str) -> str:
    """
    Clean generated petition prose.

    Strips code fences and inserts the missing space in ``##Heading``.
    Raises GenerationFailed when the text is empty or has no ``#``/``##``
    heading, the only markers the renderer turns into sections.
    """
    cleaned = strip_code_fences(text or "")
    cleaned = _HEADING_RE.sub(r"\1 ", cleaned)
    if not cleaned:
        raise GenerationFailed("O modelo retornou uma petição vazia.")
    if not _HAS_HEADING_RE.search(cleaned):
        raise GenerationFailed("A petição gerada não contém seções.")
    return cleaned
