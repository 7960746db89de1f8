"""
Serverless entrypoint (API Gateway proxy integration).

POST /api/analyze with {"topic": "..."}; OPTIONS answers the CORS preflight;
any other method gets 405. Every response carries the CORS header set.
"""

import base64
import binascii
import json
import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Tuple

from .analyzer import analyze, validate_topic
from .config import Settings, load_settings
from .errors import GENERIC_ERROR_MESSAGE, InputError, MethodNotAllowedError
from .llm_client import GeminiClient, ProviderClient
from .logging_config import setup_logging
from .schemas import AnalysisEnvelope, ErrorResponse, FailureEnvelope

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


# --- API Gateway Response Helper ---
def format_response(status_code, body_dict=None):
    headers = dict(CORS_HEADERS)
    if body_dict is None:
        body = ""
    else:
        headers["Content-Type"] = "application/json"
        body = json.dumps(body_dict)
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": body,
    }


def _http_method(event: Dict[str, Any]) -> str:
    # REST API (v1) puts it at the top level, HTTP API (v2) under requestContext
    method = event.get("httpMethod") or (
        ((event.get("requestContext") or {}).get("http") or {}).get("method")
    )
    return (method or "").upper()


def _read_topic(event: Dict[str, Any]):
    body = event.get("body")
    if not body:
        return None
    if isinstance(body, dict):
        payload = body
    else:
        try:
            if event.get("isBase64Encoded"):
                body = base64.b64decode(body).decode("utf-8")
            payload = json.loads(body)
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InputError("Request body must be valid JSON", details=str(e)) from e
    if not isinstance(payload, dict):
        return None
    return payload.get("topic")


def make_handler(client_factory: Callable[[], Tuple[ProviderClient, Settings]]):
    """
    Build an API Gateway handler around a factory returning (client, settings).
    The factory is only called for POST requests.
    """

    def handler(event, context):
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Received API Gateway event: %s", json.dumps(event, default=str))
        method = _http_method(event)

        if method == "OPTIONS":
            return format_response(200)

        try:
            if method != "POST":
                raise MethodNotAllowedError(method)

            topic = validate_topic(_read_topic(event))
            client, settings = client_factory()
            result = analyze(topic, client, settings)

            logger.info(f"Analysis completed for topic: {result.topic}")
            return format_response(200, AnalysisEnvelope(data=result).to_wire())

        except (InputError, MethodNotAllowedError) as e:
            logger.warning(f"Rejected request ({method}): {e.message}")
            return format_response(e.status_code, ErrorResponse(error=e.message).to_wire())
        except Exception:
            logger.exception("Error during analysis")
            return format_response(500, FailureEnvelope(error=GENERIC_ERROR_MESSAGE).to_wire())

    return handler


@lru_cache(maxsize=1)
def default_client() -> Tuple[ProviderClient, Settings]:
    """One Gemini client per container, built on first use."""
    settings = load_settings()
    setup_logging(settings.log_level)
    client = GeminiClient(api_key=settings.require_api_key(), model_name=settings.model_name)
    return client, settings


main = make_handler(default_client)
