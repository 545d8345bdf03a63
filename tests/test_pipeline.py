# tests/test_pipeline.py

import asyncio
import threading
import time

import pytest

from docredact.core.definitions import EntitySource, EntityType
from docredact.core.domain import CustomRule
from docredact.core.exceptions import ValidationError
from docredact.engine.adapter import AdapterState
from docredact.logic.export import apply_redactions
from docredact.logic.patterns import detect_pattern_pii
from docredact.service.pipeline import DetectionPipeline, MlStatus, redact_text

from conftest import RESUME, RESUME_PHRASES, FakeScorer, SlowLoadScorer, make_adapter


def _run_with_model(text, phrases, custom_rules=None):
    adapter, _ = make_adapter(FakeScorer(phrases))
    pipeline = DetectionPipeline(adapter=adapter)

    async def run():
        assert await pipeline.start()
        result = await pipeline.detect(text, custom_rules)
        await adapter.shutdown()
        return result

    return asyncio.run(run())


def _by_value(entities):
    return {e.value: e for e in entities}


def test_resume_end_to_end():
    result = _run_with_model(RESUME, RESUME_PHRASES)
    candidates = _by_value(result.candidates)

    assert candidates["john.smith@email.com"].type == EntityType.EMAIL
    assert candidates["john.smith@email.com"].redact
    assert candidates["(555) 123-4567"].type == EntityType.PHONE
    assert candidates["(555) 123-4567"].redact

    name = candidates["John Smith"]
    assert name.type == EntityType.NAME
    assert (name.start, name.end) == (0, 10)
    assert name.redact
    assert name.reason == "personal_name"

    org = candidates["Google Inc."]
    assert org.type == EntityType.ORGANIZATION
    assert not org.redact
    assert org.reason == "institution"

    assert "Google Inc." not in _by_value(result.entities)
    assert result.metadata["ml_status"] == MlStatus.OK


def test_result_entities_well_formed():
    text = RESUME + "\nSSN: 123-45-6789 | https://github.com/jsmith | DOB: 04/07/1991"
    result = _run_with_model(text, RESUME_PHRASES)

    ids = [e.id for e in result.candidates]
    assert len(ids) == len(set(ids))
    ordered = sorted(result.candidates, key=lambda e: e.start)
    for a, b in zip(ordered, ordered[1:]):
        assert a.end <= b.start
    for entity in result.candidates:
        assert 0 <= entity.start < entity.end <= len(text)
        assert text[entity.start : entity.end] == entity.value


def test_email_wins_over_overlapping_name():
    text = "Write to john.smith@email.com for details"
    result = _run_with_model(text, {"john.smith": ("PERSON", 0.95)})
    assert [(e.type, e.value) for e in result.candidates] == [
        (EntityType.EMAIL, "john.smith@email.com")
    ]


def test_degrades_to_patterns_when_recognizer_in_error():
    scorer = FakeScorer(RESUME_PHRASES)
    scorer.fail_load = OSError("model missing")
    adapter, _ = make_adapter(scorer)
    pipeline = DetectionPipeline(adapter=adapter)

    async def run():
        assert not await pipeline.start()
        assert adapter.state == AdapterState.ERROR
        result = await pipeline.detect(RESUME)
        await adapter.shutdown()
        return result

    result = asyncio.run(run())

    assert result.metadata["ml_status"] == MlStatus.UNAVAILABLE
    assert {e.type for e in result.entities} == {EntityType.EMAIL, EntityType.PHONE}
    assert all(e.source == EntitySource.PATTERN for e in result.candidates)
    assert [e.type for e in detect_pattern_pii(RESUME)].count(EntityType.EMAIL) == 1


def test_pattern_only_pipeline():
    result = asyncio.run(DetectionPipeline(adapter=None).detect(RESUME))
    assert result.metadata["ml_status"] == MlStatus.DISABLED
    assert sorted(e.type for e in result.entities) == [EntityType.EMAIL, EntityType.PHONE]


def test_empty_text():
    result = asyncio.run(DetectionPipeline(adapter=None).detect("  "))
    assert result.entities == []
    assert result.candidates == []


def test_custom_rules_join_the_merge():
    rules = [CustomRule(pattern=r"senior\s+engineer")]
    result = asyncio.run(DetectionPipeline(adapter=None).detect(RESUME, rules))
    custom = [e for e in result.entities if e.type == EntityType.CUSTOM]
    assert [e.value for e in custom] == ["Senior Engineer"]
    assert custom[0].reason == "custom_rule"
    assert result.metadata["custom_count"] == 1


def test_new_pass_resets_redact_flags():
    pipeline = DetectionPipeline(adapter=None)
    first = asyncio.run(pipeline.detect(RESUME))
    first.candidates[0].redact = False
    second = asyncio.run(pipeline.detect(RESUME))
    assert all(e.redact for e in second.candidates)


def test_redact_text_entry_point():
    result = redact_text(RESUME, pipeline=DetectionPipeline(adapter=None))
    redacted = result.metadata["redacted_text"]
    assert "[email redacted]" in redacted
    assert "[phone redacted]" in redacted
    assert "john.smith@email.com" not in redacted
    assert "error" not in result.metadata


def test_redact_text_never_raises_on_bad_input():
    assert "error" in redact_text(None).metadata
    assert "error" in redact_text("").metadata


def test_redact_text_reports_pipeline_failure():
    class BrokenPipeline(DetectionPipeline):
        async def detect(self, text, custom_rules=None):
            raise RuntimeError("boom")

    result = redact_text(RESUME, pipeline=BrokenPipeline(adapter=None))
    assert result.metadata["status"] == "failed"
    assert result.entities == []


def test_shared_pipeline_serves_concurrent_threads():
    scorer = SlowLoadScorer(RESUME_PHRASES, delay=0.5)
    adapter, _ = make_adapter(scorer)
    shared = DetectionPipeline(adapter=adapter)
    results = {}

    def run(name):
        results[name] = redact_text(RESUME, pipeline=shared)

    first = threading.Thread(target=run, args=("first",))
    second = threading.Thread(target=run, args=("second",))
    first.start()
    time.sleep(0.1)
    second.start()
    first.join(timeout=10)
    second.join(timeout=10)
    asyncio.run(adapter.shutdown())

    assert sorted(results) == ["first", "second"]
    for result in results.values():
        assert "error" not in result.metadata
        assert result.metadata["ml_status"] == MlStatus.OK
        assert "John Smith" not in result.metadata["redacted_text"]
        assert "[email redacted]" in result.metadata["redacted_text"]
    assert scorer.load_calls == 1
    assert adapter.state == AdapterState.READY


def test_unexpected_recognizer_failure_degrades_to_patterns():
    class BrokenAdapter:
        async def initialize(self):
            raise ValueError("wrong loop")

        async def detect(self, text):
            raise ValueError("wrong loop")

    pipeline = DetectionPipeline(adapter=BrokenAdapter())

    async def run():
        assert not await pipeline.start()
        return await pipeline.detect(RESUME)

    result = asyncio.run(run())
    assert result.metadata["ml_status"] == MlStatus.FAILED
    assert sorted(e.type for e in result.entities) == [EntityType.EMAIL, EntityType.PHONE]


def test_non_string_text_rejected():
    with pytest.raises(ValidationError):
        asyncio.run(DetectionPipeline(adapter=None).detect(12345))


def test_iban_redacted_as_one_account_number():
    text = "IBAN: DE89 3704 0044 0532 0130 00"
    result = asyncio.run(DetectionPipeline(adapter=None).detect(text))
    assert [e.type for e in result.entities] == [EntityType.BANK_ACCOUNT]
    assert apply_redactions(text, result.entities) == "IBAN: [account redacted]"
