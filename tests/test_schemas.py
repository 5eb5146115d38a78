"""Tests for warm-run schemas — per-city state and request parsing."""

import pytest
from pydantic import ValidationError

from wayvora.orchestrator.schemas import (
    CityOutcome,
    CityState,
    Stage,
    StepResult,
    StepStatus,
    WarmMode,
    WarmRequest,
    WarmRun,
)

OK = StepResult(status=StepStatus.SUCCESS, attempts=1)
FAILED = StepResult(status=StepStatus.FAILED, reason="boom", attempts=2)
SKIPPED = StepResult(status=StepStatus.SKIPPED, reason="fresh in cache")


class TestCityState:
    def test_pending(self):
        city = CityOutcome(name="Paris")
        assert city.state is CityState.PENDING
        assert city.result is None
        assert city.failure() is None

    def test_geocoded(self):
        assert CityOutcome(name="Paris", geocode=OK).state is CityState.GEOCODED

    def test_poi_cached(self):
        assert CityOutcome(name="Paris", geocode=OK, poi=OK).state is CityState.POI_CACHED

    def test_skipped_geocode_then_poi_success(self):
        city = CityOutcome(name="Paris", geocode=SKIPPED, poi=OK)
        assert city.state is CityState.POI_CACHED
        assert city.result is StepStatus.SUCCESS

    def test_all_skipped(self):
        city = CityOutcome(name="Paris", geocode=SKIPPED, poi=SKIPPED)
        assert city.state is CityState.SKIPPED
        assert city.result is StepStatus.SKIPPED

    def test_geocode_failure(self):
        city = CityOutcome(name="Atlantis", geocode=FAILED)
        assert city.state is CityState.GEOCODE_FAILED
        record = city.failure()
        assert (record.name, record.error, record.attempts, record.stage) == (
            "Atlantis", "boom", 2, Stage.GEOCODE,
        )

    def test_poi_failure(self):
        city = CityOutcome(name="Paris", geocode=OK, poi=FAILED)
        assert city.state is CityState.POI_FAILED
        assert city.failure().stage is Stage.POI


class TestWarmRun:
    def test_counts(self):
        run = WarmRun(cities=[
            CityOutcome(name="A", geocode=OK, poi=OK),
            CityOutcome(name="B", geocode=FAILED),
            CityOutcome(name="C", geocode=SKIPPED, poi=SKIPPED),
        ])
        assert (run.succeeded, run.failed, run.skipped) == (1, 1, 1)
        assert [f.name for f in run.failures] == ["B"]
        assert run.summary() == "cities=3 succeeded=1 failed=1 skipped=1"

    def test_serializes_computed_fields(self):
        run = WarmRun.for_cities(["A"])
        data = run.model_dump(mode="json")
        assert data["cities"][0]["state"] == "pending"
        assert data["succeeded"] == 0


class TestWarmMode:
    def test_phases(self):
        assert WarmMode.FULL.geocodes and WarmMode.FULL.fetches_pois
        assert WarmMode.GEOCODING_ONLY.geocodes and not WarmMode.GEOCODING_ONLY.fetches_pois
        assert not WarmMode.POI_ONLY.geocodes and WarmMode.POI_ONLY.fetches_pois


class TestWarmRequest:
    def test_camel_case(self):
        req = WarmRequest.model_validate({"mode": "poi-only", "skipExisting": True, "retryFailedOnly": True})
        assert req.mode is WarmMode.POI_ONLY
        assert req.skip_existing is True
        assert req.retry_failed_only is True

    def test_snake_case(self):
        req = WarmRequest(skip_existing=True)
        assert req.skip_existing is True
        assert req.cities is None

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            WarmRequest.model_validate({"mode": "everything"})
