"""Shared fakes: a provider client that records calls and never touches the network."""

import pytest

from app.errors import ProviderError
from app.schemas import ResearchResult, SourceReference

EV_TOPIC = "electric vehicle adoption"

EV_STRUCTURED = {
    "summary": "EV sales keep growing year over year.",
    "keyFindings": ["a", "b", "c"],
    "charts": [
        {
            "type": "bar",
            "title": "EV Sales by Year",
            "labels": ["2021", "2022", "2023"],
            "data": [100, 150, 220],
        }
    ],
}


def make_sources(n):
    return [
        SourceReference(id=f"source-{i}", url=f"https://example.com/{i}", title=f"Source {i}")
        for i in range(n)
    ]


class FakeClient:
    def __init__(self, research_text="EV research text", sources=None, structured=None,
                 research_error=None, extract_error=None):
        self.research_text = research_text
        self.sources = make_sources(8) if sources is None else sources
        self.structured = EV_STRUCTURED if structured is None else structured
        self.research_error = research_error
        self.extract_error = extract_error
        self.research_calls = []
        self.extract_calls = []

    @property
    def call_count(self):
        return len(self.research_calls) + len(self.extract_calls)

    def research(self, prompt, timeout=None):
        self.research_calls.append({"prompt": prompt, "timeout": timeout})
        if self.research_error:
            raise self.research_error
        return ResearchResult(text=self.research_text, sources=self.sources)

    def extract(self, prompt, schema, timeout=None):
        self.extract_calls.append({"prompt": prompt, "schema": schema, "timeout": timeout})
        if self.extract_error:
            raise self.extract_error
        return self.structured


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def failing_research_client():
    return FakeClient(research_error=ProviderError("quota exceeded for key AIza-secret"))


@pytest.fixture
def failing_extract_client():
    return FakeClient(extract_error=ProviderError("schema generation failed"))
