from __future__ import annotations

import json

import pytest

from brochure_pipeline import cli
from brochure_pipeline.chunk_processor import ChunkProcessor
from brochure_pipeline.pipeline import BrochurePipeline

from conftest import FakeAnalyzer, FakeImageGenerator


@pytest.fixture
def fake_build(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PAGE_ANALYZER_URL", "https://analyzer.test")
    monkeypatch.delenv("BROCHURE_STORAGE_BACKEND", raising=False)
    seen = {}

    def _build(config):
        seen["config"] = config
        return BrochurePipeline(
            config=config,
            image_generator=seen.get("generator", FakeImageGenerator()),
            processor=ChunkProcessor(seen.get("analyzer", FakeAnalyzer(_payload))),
            sleep=lambda _: None,
        )

    monkeypatch.setattr(cli, "build_pipeline", _build)
    return seen


def _payload(page: int) -> dict:
    return {"classification": "FloorPlan", "units": [{"typeName": f"B-{page}", "bedrooms": 1, "area": 600}]}


def test_cli_writes_output_and_returns_zero(fake_build, pdf_factory, tmp_path) -> None:
    pdf = tmp_path / "brochure.pdf"
    pdf.write_bytes(pdf_factory(12))
    output = tmp_path / "out.json"

    code = cli.main([str(pdf), "--output", str(output), "--pages-per-chunk", "4", "--log-level", "warning"])

    assert code == 0
    assert fake_build["config"].chunking.pages_per_chunk == 4
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["success"] is True
    assert payload["totalChunks"] == 3
    assert len(payload["building"]["units"]) == 12


def test_cli_returns_one_when_every_chunk_fails(fake_build, pdf_factory, tmp_path) -> None:
    fake_build["analyzer"] = FakeAnalyzer(_payload, failing=range(1, 4))
    pdf = tmp_path / "brochure.pdf"
    pdf.write_bytes(pdf_factory(3))

    assert cli.main([str(pdf), "--output", str(tmp_path / "out.json")]) == 1


def test_cli_returns_two_for_unreadable_pdf(fake_build, tmp_path) -> None:
    pdf = tmp_path / "broken.pdf"
    pdf.write_bytes(b"not a pdf")

    assert cli.main([str(pdf)]) == 2


def test_cli_returns_two_for_missing_pdf(fake_build, tmp_path) -> None:
    assert cli.main([str(tmp_path / "missing.pdf")]) == 2
