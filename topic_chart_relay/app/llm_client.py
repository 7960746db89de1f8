"""
LLM client wrapper using Google Gemini.

Rationale:
- Use google-generativeai SDK for Gemini access (its protos and generative client).
- Keep interface tiny: research(prompt) -> ResearchResult, extract(prompt, schema) -> dict.
- No retries / no fallback. Every SDK failure surfaces as a ProviderError.
- The client is built once by the entry point and passed to the pipeline.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai import client as genai_client
from google.generativeai import protos
from google.generativeai.types import generation_types

from .errors import ProviderError, ProviderTimeoutError
from .schemas import ResearchResult, SourceReference

logger = logging.getLogger(__name__)

# protos.Candidate.FinishReason.MAX_TOKENS
FINISH_REASON_MAX_TOKENS = 2


class ProviderClient(Protocol):
    """What the analyze pipeline needs from a generative-AI provider."""

    def research(self, prompt: str, timeout: Optional[float] = None) -> ResearchResult:
        ...

    def extract(self, prompt: str, schema: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        ...


def _response_text(response) -> str:
    """
    Pull the text out of a Gemini response.
    response.text raises ValueError when there is no usable part (safety block etc.).
    """
    try:
        result = response.text
    except ValueError:
        if not response.candidates:
            raise ProviderError("Gemini returned no candidates.")
        candidate = response.candidates[0]
        if candidate.finish_reason == FINISH_REASON_MAX_TOKENS:
            if candidate.content and candidate.content.parts:
                result = candidate.content.parts[0].text
            else:
                raise ProviderError("Gemini response truncated with no content.")
        else:
            raise ProviderError(f"Gemini blocked response. Finish reason: {candidate.finish_reason}")

    if not result:
        raise ProviderError("Gemini returned empty response")
    return result


def _extract_sources(response) -> List[SourceReference]:
    """Collect web citations from the grounding metadata of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    seen = set()
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if not uri or uri in seen:
            continue
        seen.add(uri)
        sources.append(SourceReference(
            id=f"source-{len(sources)}",
            url=uri,
            title=getattr(web, "title", None) or None,
        ))
    return sources


def _parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object, tolerating a surrounding markdown fence."""
    text = text.strip()
    if "```" in text:
        match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text, re.IGNORECASE)
        if match:
            text = match.group(1).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProviderError("Gemini structured output is not valid JSON", details=str(e)) from e
    if not isinstance(data, dict):
        raise ProviderError(f"Gemini structured output must be a JSON object, got {type(data).__name__}")
    return data


def build_request(
    model_name: str,
    prompt: str,
    generation_config=None,
    google_search: bool = False,
) -> protos.GenerateContentRequest:
    """
    Build the raw GenerateContentRequest.
    GenerativeModel's tool handling only knows the legacy google_search_retrieval
    tool, so requests are assembled at proto level and sent through the SDK client.
    """
    request = protos.GenerateContentRequest(
        model=model_name if "/" in model_name else f"models/{model_name}",
        contents=[protos.Content(role="user", parts=[protos.Part(text=prompt)])],
        generation_config=generation_types.to_generation_config_dict(generation_config),
    )
    if google_search:
        # GoogleSearch has no fields; presence alone enables grounding
        protos.GenerateContentRequest.pb(request).tools.add().google_search.SetInParent()
    return request


class GeminiClient:
    """Gemini-backed provider for the research and extraction calls."""

    def __init__(self, api_key: str, model_name: str, temperature: Optional[float] = None):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature
        self._client = genai_client.get_default_generative_client()
        logger.info(f"Gemini client initialized for model {model_name}")

    def _generate(self, request: protos.GenerateContentRequest, timeout: Optional[float]):
        kwargs = {"timeout": timeout} if timeout is not None else {}
        try:
            response = self._client.generate_content(request, **kwargs)
            return generation_types.GenerateContentResponse.from_response(response)
        except google_exceptions.DeadlineExceeded as e:
            raise ProviderTimeoutError("Gemini request timed out", details=str(e)) from e
        except Exception as e:
            raise ProviderError(f"Gemini API error: {str(e)}") from e

    def research(self, prompt: str, timeout: Optional[float] = None) -> ResearchResult:
        """Search-grounded free-text generation."""
        request = build_request(
            self.model_name,
            prompt,
            google_search=True,
            generation_config=genai.GenerationConfig(temperature=self.temperature),
        )
        response = self._generate(request, timeout)
        text = _response_text(response)
        sources = _extract_sources(response)
        logger.debug(f"Research response: {len(text)} chars, {len(sources)} sources")
        return ResearchResult(text=text, sources=sources)

    def extract(self, prompt: str, schema: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        """Schema-constrained JSON generation."""
        request = build_request(
            self.model_name,
            prompt,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                response_schema=schema,
                temperature=self.temperature,
            ),
        )
        response = self._generate(request, timeout)
        text = _response_text(response)
        logger.debug(f"Extraction raw response: {text[:1000]}")
        return _parse_json_object(text)
