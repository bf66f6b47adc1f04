# src/llm/json_extractor.py — v2
"""Recover a structured AnalysisResult from free-form model output.

Models wrap JSON in prose, fence it in markdown, leave trailing commas or
use single quotes. extract_analysis() runs a fallback chain and never
raises:

  1. strip an enclosing code fence (```json ... ``` or bare ```)
  2. cut the first balanced {...} span (string- and escape-aware)
  3. json.loads
  4. cumulative repairs, re-parsing after each one
  5. degrade: the raw text becomes root cause and the single fix

extract_analysis_checked() also reports whether step 5 was taken, so callers
can keep degraded results out of the cache.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from logsage.core.models import AnalysisResult, SuggestedFix

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5

_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_+\-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*)(?=[}\]])")
_SINGLE_QUOTED_RE = re.compile(
    r"(?<=[{\[,:])(\s*)'((?:[^'\\\n]|\\.)*)'(?=\s*[:,}\]])"
)
_NEWLINE_GAP_RE = re.compile(r"\s*\n\s*")
_LITERAL_STARTS = ("true", "false", "null")

_ROOT_CAUSE_KEYS = ("root_cause", "rootCause", "cause")
_FIXES_KEYS = ("fixes", "suggestions", "solution", "solutions")
_DESCRIPTION_KEYS = ("description", "fix", "text", "title", "action")
_CODE_KEYS = ("code_example", "codeExample", "code", "snippet")
_KNOWN_KEYS = frozenset(
    _ROOT_CAUSE_KEYS + _FIXES_KEYS + ("impact", "explanation", "confidence")
)


class ExtractionError(ValueError):
    """No structured object could be recovered. Internal to this module."""


# === PUBLIC API ===


def extract_analysis(raw_text: str, provider: str = "", model: str = "") -> AnalysisResult:
    """Best-effort AnalysisResult from ``raw_text``. Never raises."""
    return extract_analysis_checked(raw_text, provider, model)[0]


def extract_analysis_checked(
    raw_text: str, provider: str = "", model: str = "",
) -> tuple[AnalysisResult, bool]:
    """Like extract_analysis(), paired with False when the result is degraded."""
    text = raw_text if isinstance(raw_text, str) else str(raw_text or "")
    try:
        data = extract_json_object(text)
    except ExtractionError as e:
        logger.warning("Could not extract JSON from %s response: %s", provider or "provider", e)
        return _degraded(text, provider, model), False
    return _to_result(data, provider, model), True


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first JSON object recoverable from ``text``.

    Raises:
        ExtractionError: If every candidate span fails to parse after repairs.
    """
    last_error: Exception | None = None
    for candidate in _candidates(text):
        span = find_json_span(candidate)
        if span is None:
            continue
        try:
            return _parse_with_repairs(span)
        except ExtractionError as e:
            last_error = e
    if last_error is None:
        raise ExtractionError("no '{' found in response")
    raise last_error


def strip_code_fence(text: str) -> str | None:
    """Interior of the first fenced block, or None if there is none."""
    match = _FENCE_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def find_json_span(text: str) -> str | None:
    """Slice from the first '{' to its balanced '}'.

    Braces inside quoted strings are ignored and backslash escapes honored.
    When the object never closes, falls back to the last '}' (or the tail).
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    quote: str | None = None
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if quote is not None:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    end = text.rfind("}")
    if end > start:
        return text[start : end + 1]
    return text[start:]


# === PARSE + REPAIR CHAIN ===


def _candidates(text: str) -> list[str]:
    fenced = strip_code_fence(text)
    if fenced is not None and "{" in fenced:
        return [fenced, text]
    return [text]


def _parse_with_repairs(span: str) -> dict[str, Any]:
    try:
        return _load_object(span)
    except ExtractionError as first_error:
        error = first_error

    repaired = span
    for repair in _REPAIRS:
        candidate = repair(repaired)
        if candidate == repaired:
            continue
        repaired = candidate
        try:
            data = _load_object(repaired)
        except ExtractionError as e:
            error = e
            continue
        logger.debug("JSON recovered after %s", repair.__name__)
        return data
    raise error


def _load_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionError(f"expected a JSON object, got {type(data).__name__}")
    if not _KNOWN_KEYS.intersection(data):
        raise ExtractionError("JSON object has no analysis fields")
    return data


def _split_strings(text: str) -> list[tuple[bool, str]]:
    """Split into (is_double_quoted_string, chunk) pairs; quotes kept."""
    chunks: list[tuple[bool, str]] = []
    n = len(text)
    i = buf_start = 0
    while i < n:
        if text[i] != '"':
            i += 1
            continue
        if i > buf_start:
            chunks.append((False, text[buf_start:i]))
        j = i + 1
        escape = False
        while j < n:
            c = text[j]
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == '"':
                break
            j += 1
        end = min(j + 1, n)
        chunks.append((True, text[i:end]))
        i = buf_start = end
    if buf_start < n:
        chunks.append((False, text[buf_start:]))
    return chunks


def _map_outside_strings(text: str, fn: Callable[[str], str]) -> str:
    return "".join(chunk if is_str else fn(chunk) for is_str, chunk in _split_strings(text))


def remove_trailing_commas(text: str) -> str:
    return _map_outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def _requote(match: re.Match[str]) -> str:
    inner = match.group(2).replace("\\'", "'").replace('"', '\\"')
    return f'{match.group(1)}"{inner}"'


def convert_single_quotes(text: str) -> str:
    return _map_outside_strings(text, lambda chunk: _SINGLE_QUOTED_RE.sub(_requote, chunk))


def _escape_control(ch: str) -> str:
    if ch == "\n":
        return "\\n"
    if ch == "\r":
        return "\\r"
    if ch == "\t":
        return "\\t"
    return f"\\u{ord(ch):04x}"


def escape_control_chars(text: str) -> str:
    out: list[str] = []
    for is_str, chunk in _split_strings(text):
        if is_str:
            chunk = "".join(_escape_control(c) if ord(c) < 0x20 else c for c in chunk)
        out.append(chunk)
    return "".join(out)


def _ends_value(ch: str) -> bool:
    return ch in "\"}]" or ch.isalnum()


def _starts_value(text: str) -> bool:
    if not text:
        return False
    return text[0] in "\"{[-" or text[0].isdigit() or text.startswith(_LITERAL_STARTS)


def insert_missing_commas(text: str) -> str:
    """Add a comma where two values are separated only by a line break."""
    chunks = _split_strings(text)
    out: list[str] = []
    for k, (is_str, chunk) in enumerate(chunks):
        if is_str:
            out.append(chunk)
            continue
        prev_tail = chunks[k - 1][1][-1:] if k > 0 else ""
        next_head = chunks[k + 1][1] if k + 1 < len(chunks) else ""

        def fix(match: re.Match[str], chunk: str = chunk,
                prev_tail: str = prev_tail, next_head: str = next_head) -> str:
            before = chunk[: match.start()].rstrip()
            after = chunk[match.end():]
            last = before[-1:] if before else prev_tail
            following = after if after else next_head
            if last and _ends_value(last) and _starts_value(following):
                return "," + match.group(0)
            return match.group(0)

        out.append(_NEWLINE_GAP_RE.sub(fix, chunk))
    return "".join(out)


_REPAIRS: tuple[Callable[[str], str], ...] = (
    remove_trailing_commas,
    convert_single_quotes,
    escape_control_chars,
    insert_missing_commas,
)


# === FIELD MAPPING ===


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _as_priority(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        priority = int(float(value))
    except (TypeError, ValueError):
        return None
    return min(max(priority, 1), 5)


def _as_confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(str(value).strip().rstrip("%"))
    except ValueError:
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    if 1.0 < confidence <= 100.0:
        confidence /= 100.0
    return min(max(confidence, 0.0), 1.0)


def _to_fix(item: Any) -> SuggestedFix | None:
    if isinstance(item, dict):
        description = _as_text(_first(item, _DESCRIPTION_KEYS))
        code = _as_text(_first(item, _CODE_KEYS)) or None
        if not description and code is None:
            return None
        return SuggestedFix(
            description=description,
            code_example=code,
            priority=_as_priority(item.get("priority")),
        )
    description = _as_text(item)
    return SuggestedFix(description=description) if description else None


def _to_fixes(value: Any) -> list[SuggestedFix]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    return [fix for fix in (_to_fix(item) for item in items) if fix is not None]


def _to_result(data: dict[str, Any], provider: str, model: str) -> AnalysisResult:
    return AnalysisResult(
        root_cause=_as_text(_first(data, _ROOT_CAUSE_KEYS)),
        impact=_as_text(data.get("impact")),
        explanation=_as_text(data.get("explanation")),
        fixes=_to_fixes(_first(data, _FIXES_KEYS)),
        confidence=_as_confidence(data.get("confidence")),
        provider=provider,
        model=model,
        origin="fresh",
    )


def _degraded(text: str, provider: str, model: str) -> AnalysisResult:
    return AnalysisResult(
        root_cause=text,
        fixes=[SuggestedFix(description=text)],
        confidence=0.0,
        provider=provider,
        model=model,
        origin="fresh",
    )
