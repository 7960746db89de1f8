"""
Core orchestration / pipeline.

Flow:
1. Validate the topic (no provider call on bad input)
2. Research call: search-grounded free text + sources
3. Extraction call: research text -> schema-constrained summary/findings/charts
4. Check chart invariants (warn, or reject in strict mode)
5. Assemble the response: sources capped at MAX_SOURCES, timestamp taken now

Errors are raised, never returned; the transport adapters own the boundary.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import Settings
from .errors import InputError, MalformedOutputError
from .llm_client import ProviderClient
from .schemas import (
    ANALYSIS_SCHEMA,
    MAX_SOURCES,
    AnalysisResponse,
    StructuredAnalysis,
)
from .utils import Deadline, utc_timestamp

logger = logging.getLogger(__name__)

# Prompt file paths
PROMPTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts")
RESEARCH_PROMPT_PATH = os.path.join(PROMPTS_DIR, "research.txt")
EXTRACTION_PROMPT_PATH = os.path.join(PROMPTS_DIR, "extraction.txt")

# Ranges the extraction prompt asks for; the provider does not enforce them
KEY_FINDINGS_RANGE = (3, 5)
CHARTS_RANGE = (1, 8)


def _read_prompt(path: str) -> str:
    """Read a prompt text file."""
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def build_research_prompt(topic: str) -> str:
    return _read_prompt(RESEARCH_PROMPT_PATH).format(topic=topic)


def build_extraction_prompt(research_data: str) -> str:
    return _read_prompt(EXTRACTION_PROMPT_PATH).format(research_data=research_data)


def validate_topic(topic: Any) -> str:
    """Return the topic unchanged if usable, else raise InputError."""
    if not isinstance(topic, str) or not topic.strip():
        raise InputError()
    return topic


def _parse_structured(raw: Dict[str, Any]) -> StructuredAnalysis:
    try:
        return StructuredAnalysis.model_validate(raw)
    except ValidationError as e:
        raise MalformedOutputError(
            "Gemini structured output does not match the analysis schema",
            details=e.errors(include_url=False),
        ) from e


def check_charts(analysis: StructuredAnalysis, strict: bool = False) -> List[str]:
    """
    Check the invariants the schema cannot express.
    Returns the list of problems found; in strict mode a label/data length
    mismatch raises MalformedOutputError instead.
    """
    problems = []

    low, high = KEY_FINDINGS_RANGE
    if not low <= len(analysis.key_findings) <= high:
        problems.append(f"expected {low}-{high} key findings, got {len(analysis.key_findings)}")

    low, high = CHARTS_RANGE
    if not low <= len(analysis.charts) <= high:
        problems.append(f"expected {low}-{high} charts, got {len(analysis.charts)}")

    mismatched = [chart for chart in analysis.charts if len(chart.labels) != len(chart.data)]
    for chart in mismatched:
        problems.append(
            f"chart '{chart.title}' has {len(chart.labels)} labels but {len(chart.data)} values"
        )

    if strict and mismatched:
        raise MalformedOutputError(
            "Chart labels and data lengths differ",
            details=[chart.title for chart in mismatched],
        )

    for problem in problems:
        logger.warning(f"Structured output check: {problem}")
    return problems


def analyze(
    topic: Any,
    client: ProviderClient,
    settings: Optional[Settings] = None,
) -> AnalysisResponse:
    """
    Main analysis pipeline: one research call, one extraction call.

    Args:
        topic: Subject supplied by the caller
        client: Provider capability (see llm_client.ProviderClient)
        settings: Timeout and strictness; defaults apply when omitted

    Returns:
        AnalysisResponse ready to be wrapped in a success envelope
    """
    settings = settings or Settings()

    # 1) Validate input before touching the provider
    topic = validate_topic(topic)
    logger.info(f"Starting analysis for topic: {topic}")

    deadline = Deadline(settings.provider_timeout)

    # 2) Research call
    research = client.research(
        build_research_prompt(topic),
        timeout=deadline.timeout_for("research call"),
    )
    logger.info(f"Research data received ({len(research.text)} chars, {len(research.sources)} sources)")

    # 3) Extraction call
    raw = client.extract(
        build_extraction_prompt(research.text),
        schema=ANALYSIS_SCHEMA,
        timeout=deadline.timeout_for("extraction call"),
    )
    analysis = _parse_structured(raw)
    logger.info(f"Chart data generated ({len(analysis.charts)} charts)")

    # 4) Invariants the provider schema cannot enforce
    check_charts(analysis, strict=settings.strict_chart_validation)

    # 5) Assemble
    return AnalysisResponse(
        topic=topic,
        summary=analysis.summary,
        key_findings=analysis.key_findings,
        charts=analysis.charts,
        sources=research.sources[:MAX_SOURCES],
        timestamp=utc_timestamp(),
    )
