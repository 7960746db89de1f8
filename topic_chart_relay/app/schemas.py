"""
Pydantic request/response models and the provider-facing output schema.

Rationale:
- Explicit input/output contracts so the frontend knows what to send and expect.
- camelCase on the wire (aliases), snake_case in Python.
- ANALYSIS_SCHEMA is what Gemini is asked to conform to; StructuredAnalysis is
  how we read the result back.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ChartType = Literal["bar", "line", "pie", "doughnut"]
CHART_TYPES = ["bar", "line", "pie", "doughnut"]

MAX_SOURCES = 5


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SourceReference(WireModel):
    source_type: str = Field("url", alias="sourceType")
    id: str
    url: str
    title: Optional[str] = None


class ResearchResult(BaseModel):
    text: str
    sources: List[SourceReference] = Field(default_factory=list)


class ChartSpec(WireModel):
    type: ChartType
    title: str
    labels: List[str]
    data: List[Union[int, float]]
    background_color: Optional[List[str]] = Field(None, alias="backgroundColor")
    border_color: Optional[List[str]] = Field(None, alias="borderColor")
    unit: Optional[str] = None


class StructuredAnalysis(WireModel):
    summary: str
    key_findings: List[str] = Field(alias="keyFindings")
    charts: List[ChartSpec]


class AnalysisResponse(WireModel):
    topic: str
    summary: str
    key_findings: List[str] = Field(alias="keyFindings")
    charts: List[ChartSpec]
    sources: List[SourceReference] = Field(default_factory=list, max_length=MAX_SOURCES)
    timestamp: str


class AnalysisEnvelope(WireModel):
    success: Literal[True] = True
    data: AnalysisResponse


class FailureEnvelope(WireModel):
    success: Literal[False] = False
    error: str


class ErrorResponse(WireModel):
    error: str


class HealthResponse(WireModel):
    status: str = "OK"
    timestamp: str


# Gemini response_schema (OpenAPI subset). Types are upper-case proto enum names.
CHART_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "type": {
            "type": "STRING",
            "format": "enum",
            "enum": CHART_TYPES,
            "description": "Chart type",
        },
        "title": {"type": "STRING", "description": "Chart title"},
        "labels": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Chart labels",
        },
        "data": {
            "type": "ARRAY",
            "items": {"type": "NUMBER"},
            "description": "Chart values, one per label",
        },
        "backgroundColor": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Background colors (rgba or hex)",
        },
        "borderColor": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Border colors (rgba or hex)",
        },
        "unit": {
            "type": "STRING",
            "description": "Unit of the values, e.g. %, people, USD billions",
        },
    },
    "required": ["type", "title", "labels", "data"],
}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "STRING",
            "description": "Summary of the research topic, about 200 words",
        },
        "keyFindings": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "3-5 key findings",
        },
        "charts": {
            "type": "ARRAY",
            "items": CHART_SCHEMA,
            "description": "1-8 chart configurations",
        },
    },
    "required": ["summary", "keyFindings", "charts"],
}
