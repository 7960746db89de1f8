"""
GeminiClient tests.

Requests and responses are real SDK protos; only the transport
(the generative service client) is faked, so nothing hits the network.
"""
import pytest
from google.api_core import exceptions as google_exceptions
from google.generativeai import protos

from app import llm_client
from app.errors import ProviderError, ProviderTimeoutError
from app.llm_client import GeminiClient, build_request
from app.schemas import ANALYSIS_SCHEMA, CHART_TYPES


def _response(text, chunks=(), finish_reason=protos.Candidate.FinishReason.STOP):
    candidate = protos.Candidate(
        finish_reason=finish_reason,
        grounding_metadata=protos.GroundingMetadata(grounding_chunks=[
            protos.GroundingChunk(web=protos.GroundingChunk.Web(uri=uri, title=title))
            for uri, title in chunks
        ]),
    )
    if text is not None:
        candidate.content = protos.Content(role="model", parts=[protos.Part(text=text)])
    return protos.GenerateContentResponse(candidates=[candidate])


class FakeService:
    """Stands in for GenerativeServiceClient.generate_content."""

    def __init__(self):
        self.requests = []
        self.timeouts = []
        self.response = None
        self.error = None

    def generate_content(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def service(monkeypatch):
    fake = FakeService()
    monkeypatch.setattr(llm_client.genai, "configure", lambda **kw: None)
    monkeypatch.setattr(llm_client.genai_client, "get_default_generative_client", lambda: fake)
    return fake


@pytest.fixture
def gemini(service):
    return GeminiClient(api_key="test-key", model_name="gemini-2.5-flash")


# ===================================================================
#  Outgoing requests
# ===================================================================

class TestBuildRequest:
    def test_research_request_uses_google_search_tool(self, gemini, service):
        service.response = _response("text")
        gemini.research("research EVs")

        request = service.requests[0]
        assert request.model == "models/gemini-2.5-flash"
        assert request.contents[0].parts[0].text == "research EVs"
        assert len(request.tools) == 1

        # survives serialization, i.e. it is what goes on the wire
        wire = protos.GenerateContentRequest.deserialize(protos.GenerateContentRequest.serialize(request))
        tool = protos.Tool.pb(wire.tools[0])
        assert tool.HasField("google_search")
        assert not tool.HasField("google_search_retrieval")

    def test_extraction_request_carries_schema_proto(self):
        config = llm_client.genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
        )
        request = build_request("gemini-2.5-flash", "extract", generation_config=config)

        generation_config = request.generation_config
        assert generation_config.response_mime_type == "application/json"
        schema = generation_config.response_schema
        assert isinstance(schema, protos.Schema)
        assert schema.type_ == protos.Type.OBJECT
        chart = schema.properties["charts"].items
        assert chart.type_ == protos.Type.OBJECT
        assert list(chart.properties["type"].enum) == CHART_TYPES
        assert chart.properties["data"].items.type_ == protos.Type.NUMBER
        assert len(request.tools) == 0

    def test_schema_constant_not_mutated(self):
        before = repr(ANALYSIS_SCHEMA)
        build_request("gemini-2.5-flash", "p", generation_config=llm_client.genai.GenerationConfig(
            response_mime_type="application/json", response_schema=ANALYSIS_SCHEMA,
        ))
        assert repr(ANALYSIS_SCHEMA) == before

    def test_qualified_model_name_kept(self):
        assert build_request("tunedModels/mine", "p").model == "tunedModels/mine"


# ===================================================================
#  Research call
# ===================================================================

class TestResearch:
    def test_text_and_sources(self, gemini, service):
        service.response = _response("EV sales rose 35%", [
            ("https://iea.org/ev", "IEA"),
            ("https://iea.org/ev", "IEA duplicate"),
            ("", "no uri"),
            ("https://bnef.com/ev", ""),
        ])

        result = gemini.research("prompt", timeout=12.5)

        assert result.text == "EV sales rose 35%"
        assert [s.url for s in result.sources] == ["https://iea.org/ev", "https://bnef.com/ev"]
        assert [s.id for s in result.sources] == ["source-0", "source-1"]
        assert result.sources[0].title == "IEA"
        assert result.sources[1].title is None
        assert service.timeouts == [12.5]

    def test_no_grounding_chunks(self, gemini, service):
        service.response = _response("plain")
        result = gemini.research("prompt")
        assert result.sources == []
        assert service.timeouts == [None]

    def test_blocked_response(self, gemini, service):
        service.response = _response(None, finish_reason=protos.Candidate.FinishReason.SAFETY)
        with pytest.raises(ProviderError):
            gemini.research("prompt")

    def test_no_candidates(self, gemini, service):
        service.response = protos.GenerateContentResponse()
        with pytest.raises(ProviderError):
            gemini.research("prompt")

    def test_empty_text(self, gemini, service):
        service.response = _response("")
        with pytest.raises(ProviderError):
            gemini.research("prompt")

    def test_sdk_timeout(self, gemini, service):
        service.error = google_exceptions.DeadlineExceeded("too slow")
        with pytest.raises(ProviderTimeoutError):
            gemini.research("prompt", timeout=1)

    def test_sdk_error_wrapped(self, gemini, service):
        service.error = google_exceptions.ResourceExhausted("quota")
        with pytest.raises(ProviderError) as exc:
            gemini.research("prompt")
        assert not isinstance(exc.value, ProviderTimeoutError)
        assert "quota" in exc.value.message


# ===================================================================
#  Extraction call
# ===================================================================

class TestExtract:
    def test_json_object(self, gemini, service):
        service.response = _response('{"summary": "s", "keyFindings": [], "charts": []}')

        data = gemini.extract("prompt", ANALYSIS_SCHEMA, timeout=5)

        assert data == {"summary": "s", "keyFindings": [], "charts": []}
        request = service.requests[0]
        assert request.generation_config.response_mime_type == "application/json"
        assert len(request.tools) == 0
        assert service.timeouts == [5]

    def test_fenced_json(self, gemini, service):
        service.response = _response('```json\n{"summary": "s"}\n```')
        assert gemini.extract("prompt", ANALYSIS_SCHEMA) == {"summary": "s"}

    @pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]"])
    def test_non_object_output(self, gemini, service, text):
        service.response = _response(text)
        with pytest.raises(ProviderError):
            gemini.extract("prompt", ANALYSIS_SCHEMA)
