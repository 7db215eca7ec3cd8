"""Filter parser orchestration (LLM optional; rules-based fallback)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from carmarket.intent.llm_parser import LLMConfig, LLMParserError, parse_filters_json_via_llm
from carmarket.intent.rules_parser import RulesParserError, confidence_for
from carmarket.intent.rules_parser import parse_filters as parse_rules_filters
from carmarket.intent.schema import ParsedFilters, ParseSource, llm_output_from_obj

logger = logging.getLogger(__name__)


class IntentParserError(ValueError):
    """Raised when no parser can produce any filter."""


@dataclass(frozen=True)
class ParseResult:
    """Validated filters plus the confidence and the parser that produced them."""

    filters: ParsedFilters
    confidence: float
    source: ParseSource


def parse_filters_with_source(text: str, *, llm: LLMConfig | None = None) -> ParseResult:
    """Parse free text into partial search filters.

    Strategy:
        1) If an LLM config is given, ask the LLM to produce strict filter JSON and validate it.
        2) On any failure, invalid JSON or an empty filter set, fall back to the rules parser.
        3) If rules parsing fails too, raise `IntentParserError`.
    """

    if llm is not None:
        try:
            obj: dict[str, Any] = parse_filters_json_via_llm(text, config=llm)
            output = llm_output_from_obj(obj)
            if output.parsed_filters.present():
                return ParseResult(
                    filters=output.parsed_filters,
                    confidence=output.confidence,
                    source="llm",
                )
            logger.info("llm recognized nothing; falling back to rules")
        except (LLMParserError, ValueError) as exc:
            # Invalid LLM output must never crash the pipeline; fall back to rules.
            logger.warning("llm parse failed reason=%s", exc)

    try:
        filters = parse_rules_filters(text)
    except RulesParserError as exc:
        raise IntentParserError(str(exc)) from exc
    return ParseResult(filters=filters, confidence=confidence_for(filters), source="rules")


def parse_filters(text: str, *, llm: LLMConfig | None = None) -> ParsedFilters:
    """Parse text into validated filters (convenience wrapper)."""

    return parse_filters_with_source(text, llm=llm).filters
