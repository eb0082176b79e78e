"""Outcome recorders and the feature pattern extractor."""

import json
import logging

import pytest

from prompt_orchestrator.collaborators.base import PatternExtractor, Recorder
from prompt_orchestrator.collaborators.patterns import FeaturePatternExtractor
from prompt_orchestrator.collaborators.recorders import (
    JSONLinesRecorder,
    LoggingRecorder,
    NullRecorder,
    record_to_dict,
)
from prompt_orchestrator.core.types import OutcomeRecord
from tests.helpers import entry

pytestmark = pytest.mark.unit


def test_reference_implementations_satisfy_protocols():
    assert isinstance(NullRecorder(), Recorder)
    assert isinstance(LoggingRecorder(), Recorder)
    assert isinstance(FeaturePatternExtractor(), PatternExtractor)


def test_record_to_dict_unfreezes_metadata():
    record = OutcomeRecord(kind="final", text="t", score=80.0, metadata={"a": 1})

    assert record_to_dict(record) == {
        "kind": "final",
        "text": "t",
        "score": 80.0,
        "metadata": {"a": 1},
    }


def test_outcome_record_rejects_unknown_kind():
    with pytest.raises(ValueError, match="kind"):
        OutcomeRecord(kind="partial", text="t")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_logging_recorder_emits_structured_fields(caplog):
    logger = logging.getLogger("tests.recorder")
    caplog.set_level(logging.INFO, logger="tests.recorder")

    await LoggingRecorder(logger).record(OutcomeRecord(kind="initial", text="abc"))

    (log_record,) = [r for r in caplog.records if r.name == "tests.recorder"]
    assert log_record.record_kind == "initial"
    assert log_record.record_score is None
    assert "3 chars" in log_record.getMessage()


@pytest.mark.asyncio
async def test_json_lines_recorder_appends_and_reads_back(tmp_path):
    path = tmp_path / "nested" / "outcomes.jsonl"
    recorder = JSONLinesRecorder(path)

    await recorder.record(OutcomeRecord(kind="initial", text="a"))
    await recorder.record(OutcomeRecord(kind="final", text="b", score=91.0))

    records = recorder.read_all()
    assert [r["kind"] for r in records] == ["initial", "final"]
    assert records[1]["score"] == 91.0
    assert all("recorded_at" in r for r in records)


def test_json_lines_recorder_skips_malformed_lines(tmp_path, caplog):
    path = tmp_path / "outcomes.jsonl"
    path.write_text(
        json.dumps({"kind": "final", "text": "ok"}) + "\n{not json\n\n", encoding="utf-8"
    )

    records = JSONLinesRecorder(path).read_all()

    assert records == [{"kind": "final", "text": "ok"}]
    assert "Skipping malformed line" in caplog.text


def test_json_lines_recorder_missing_file_reads_empty(tmp_path):
    assert JSONLinesRecorder(tmp_path / "absent.jsonl").read_all() == []


@pytest.mark.asyncio
async def test_extractor_reports_feature_frequencies():
    entries = [
        entry(90.0, text="<task>1. Do it</task> Return JSON"),
        entry(88.0, text="<task>You MUST handle every error</task>"),
        entry(86.0, text="For example: plain words"),
        entry(95.0, text="<a>b</a>"),
    ]

    report = await FeaturePatternExtractor().extract(entries)

    frequencies = {p.name: p.frequency for p in report.patterns}
    assert frequencies["xml_tags"] == 0.75
    assert frequencies["examples"] == 0.25
    assert report.patterns[0].name == "xml_tags"
    assert report.entries_analyzed == 4
    assert report.average_score == 89.75


@pytest.mark.asyncio
async def test_extractor_respects_min_frequency():
    entries = [entry(90.0, text="<a>b</a>"), entry(90.0, text="Example: one")]

    report = await FeaturePatternExtractor(min_frequency=0.6).extract(entries)

    assert report.patterns == ()


@pytest.mark.asyncio
async def test_extractor_on_empty_input():
    report = await FeaturePatternExtractor().extract([])

    assert report.patterns == ()
    assert report.entries_analyzed == 0


def test_extractor_rejects_out_of_range_threshold():
    with pytest.raises(ValueError):
        FeaturePatternExtractor(min_frequency=1.5)
