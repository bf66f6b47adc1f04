# src/llm/prompts.py — v1
"""Analysis prompt construction.

The template lives in llm/templates/error_analysis.txt and is loaded once.
Example messages are capped and truncated so one huge stack trace cannot
blow the request size.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from logsage.core.models import LogEntry, Severity

_TEMPLATE_PATH = Path(__file__).parent / "templates" / "error_analysis.txt"
_template_cache: str | None = None

DEFAULT_TRUNCATE_LENGTH = 2000
DEFAULT_PROMPT_EXAMPLES = 3
TRUNCATION_MARKER = "... (truncated)"

SYSTEM_PROMPT = (
    "You are a senior site reliability engineer diagnosing production "
    "errors. Respond only with valid JSON."
)


def _load_template() -> str:
    global _template_cache
    if _template_cache is None:
        _template_cache = _TEMPLATE_PATH.read_text(encoding="utf-8")
    return _template_cache


def truncate_message(message: str, max_length: int = DEFAULT_TRUNCATE_LENGTH) -> str:
    """Cut ``message`` to ``max_length`` characters plus a marker."""
    if max_length <= 0 or len(message) <= max_length:
        return message
    return message[:max_length] + TRUNCATION_MARKER


def build_analysis_prompt(
    pattern: str,
    severity: Severity | str,
    examples: Sequence[LogEntry | str],
    occurrences: int | None = None,
    truncate_length: int = DEFAULT_TRUNCATE_LENGTH,
    max_examples: int = DEFAULT_PROMPT_EXAMPLES,
) -> str:
    """Render the analysis prompt for one error group.

    Args:
        pattern: Normalized pattern of the group.
        severity: Group severity.
        examples: Example entries (or raw messages); at most
            ``max_examples`` are included.
        occurrences: Group count, when known.
        truncate_length: Per-example character cap.
        max_examples: Number of examples to include.

    Returns:
        Prompt text. The pattern itself stands in when there are no examples.
    """
    lines = [
        truncate_message(ex.message if isinstance(ex, LogEntry) else str(ex), truncate_length)
        for ex in list(examples)[:max_examples]
    ]
    examples_text = "\n".join(lines) if lines else truncate_message(pattern, truncate_length)

    return _load_template().format(
        pattern=truncate_message(pattern, truncate_length),
        severity=Severity.parse(severity).value.upper(),
        occurrences=occurrences if occurrences is not None else "unknown",
        examples=examples_text,
    )
