# src/analyzer/normalizer.py — v1
"""Log message normalization — replace dynamic values with typed placeholders.

Rules are applied in order, most specific first, so that a generic rule
(bare numbers) never eats characters belonging to a URL, UUID, address or
path. The rule pass is repeated until the text stops changing, which makes
normalize() idempotent: normalize(normalize(x)) == normalize(x).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_MAX_PASSES = 8
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizationRule:
    """One substitution: every match of ``pattern`` becomes ``replacement``."""

    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


_HEX4 = r"[0-9A-Fa-f]{1,4}"

DEFAULT_RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule(
        "url",
        re.compile(r"\b[A-Za-z][A-Za-z0-9+.\-]*://[^\s\"'<>]+"),
        "<URL>",
    ),
    NormalizationRule(
        "timestamp",
        re.compile(
            r"(?<!\d)(?:"
            r"\d{4}-\d{2}-\d{2}(?:[T\s]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?"
            r"|\d{4}/\d{2}/\d{2}\s+\d{2}:\d{2}:\d{2}(?:[.,]\d+)?"
            r")(?!\d)"
        ),
        "<TIMESTAMP>",
    ),
    NormalizationRule(
        "uuid",
        re.compile(
            r"\b[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\b"
        ),
        "<UUID>",
    ),
    NormalizationRule(
        "ipv4",
        re.compile(r"(?<![\w.])(?:\d{1,3}\.){3}\d{1,3}(?::\d{1,5})?(?!\w)(?!\.\w)"),
        "<IP>",
    ),
    NormalizationRule(
        "ipv6",
        re.compile(
            r"(?<![\w:])(?=[\w:]*\d)(?:"
            rf"(?:{_HEX4}:){{7}}{_HEX4}"
            rf"|(?:{_HEX4}:){{1,7}}:(?:{_HEX4}(?::{_HEX4}){{0,6}})?"
            rf"|::{_HEX4}(?::{_HEX4}){{0,6}}"
            r")(?![\w:])"
        ),
        "<IP>",
    ),
    NormalizationRule(
        "path",
        re.compile(
            r"(?<![\w/\\.\-~])(?:[A-Za-z]:)?[\w.\-~]*(?:[/\\][\w.\-~]+)+:\d+(?::\d+)?(?!\w)"
        ),
        "<PATH>",
    ),
    NormalizationRule(
        "thread_bracket",
        re.compile(r"\[[A-Za-z][\w.\-]*-\d+\]"),
        "[<THREAD>]",
    ),
    NormalizationRule(
        "thread_name",
        re.compile(r"\b(?:exec|thread|worker|pool|task)-\d+\b", re.IGNORECASE),
        "<THREAD>",
    ),
    NormalizationRule(
        "process_id",
        re.compile(r"\b(pid|ppid|tid|thread[_ ]?id)(\s*[=:#]\s*|\s+)\d+\b", re.IGNORECASE),
        r"\1\2<PID>",
    ),
    NormalizationRule(
        "clock_time",
        re.compile(r"(?<![\d:])\d{1,2}:\d{2}:\d{2}(?:[.,]\d+)?(?![\d:])"),
        "<TIMESTAMP>",
    ),
    NormalizationRule(
        "hex",
        re.compile(
            r"\b0[xX][0-9A-Fa-f]+\b"
            r"|\b(?=[0-9A-Fa-f]*[A-Fa-f])(?=[0-9A-Fa-f]*\d)[0-9A-Fa-f]{16,}\b"
        ),
        "<HEX>",
    ),
    NormalizationRule(
        "number",
        re.compile(r"(?<![A-Za-z0-9])\d{5,}(?![A-Za-z0-9])"),
        "<NUM>",
    ),
)


class Normalizer:
    """Deterministic raw message -> pattern transform."""

    def __init__(self, rules: tuple[NormalizationRule, ...] | list[NormalizationRule] | None = None) -> None:
        self._rules = tuple(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> tuple[NormalizationRule, ...]:
        return self._rules

    def normalize(self, raw: object) -> str:
        """Return the canonical pattern for ``raw``. Never raises."""
        text = "" if raw is None else str(raw)
        for _ in range(_MAX_PASSES):
            result = self._single_pass(text)
            if result == text:
                break
            text = result
        return text

    def _single_pass(self, text: str) -> str:
        for rule in self._rules:
            text = rule.apply(text)
        return _WHITESPACE_RE.sub(" ", text).strip()


_DEFAULT_NORMALIZER = Normalizer()


def normalize(raw: object) -> str:
    """Normalize with the default rule set."""
    return _DEFAULT_NORMALIZER.normalize(raw)
