from __future__ import annotations

import pytest
import requests

from brochure_pipeline.analyzer import HttpPageAnalyzer, PageAnalyzerError
from brochure_pipeline.config import AnalyzerConfig
from brochure_pipeline.models import PageClassification


class _FakeResponse:
    def __init__(self, status_code: int = 200, body=None, text: str = "") -> None:
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body
        self.text = text

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class _FakeSession:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.response = response
        self.error = error
        self.requests: list[dict] = []

    def post(self, url, json=None, timeout=None):
        self.requests.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


CONFIG = AnalyzerConfig(url="https://analyzer.test/analyze-page", api_key="secret", timeout_seconds=12.5)


def test_analyze_posts_page_and_parses_response() -> None:
    session = _FakeSession(
        _FakeResponse(
            body={
                "classification": "floor plan",
                "confidence": 0.82,
                "units": [{"typeName": "A-1", "bedrooms": "1", "extraField": "kept"}],
            },
        ),
    )

    metadata = HttpPageAnalyzer(CONFIG, session=session).analyze("https://img/p4.jpg", 4, "tower.pdf")

    assert session.headers["Authorization"] == "Bearer secret"
    assert session.requests == [
        {
            "url": "https://analyzer.test/analyze-page",
            "json": {"imageUrl": "https://img/p4.jpg", "pageNumber": 4, "source": "tower.pdf"},
            "timeout": 12.5,
        },
    ]
    assert metadata.page_number == 4
    assert metadata.classification is PageClassification.FLOOR_PLAN
    assert metadata.units[0].bedrooms == 1
    assert metadata.units[0].to_dict()["extraField"] == "kept"
    assert metadata.processing_time_ms is not None


def test_unknown_classification_parses_to_unknown() -> None:
    session = _FakeSession(_FakeResponse(body={"classification": "brochure back page"}))

    metadata = HttpPageAnalyzer(CONFIG, session=session).analyze("u", 1, "s")

    assert metadata.classification is PageClassification.UNKNOWN


def test_no_authorization_header_without_api_key() -> None:
    session = _FakeSession(_FakeResponse(body={}))

    HttpPageAnalyzer(AnalyzerConfig(url="https://analyzer.test"), session=session)

    assert "Authorization" not in session.headers


@pytest.mark.parametrize(
    "session",
    [
        _FakeSession(_FakeResponse(status_code=502, text="bad gateway")),
        _FakeSession(_FakeResponse(body=ValueError("no json"))),
        _FakeSession(_FakeResponse(body=["not", "an", "object"])),
        _FakeSession(error=requests.ConnectionError("refused")),
    ],
)
def test_failures_raise_page_analyzer_error(session) -> None:
    with pytest.raises(PageAnalyzerError):
        HttpPageAnalyzer(CONFIG, session=session).analyze("u", 1, "s")
