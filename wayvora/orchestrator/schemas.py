"""Pydantic models for warm-cache runs, jobs and the failure file."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from wayvora.integrations.nominatim import GeocodedCity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WarmMode(str, Enum):
    GEOCODING_ONLY = "geocoding-only"
    POI_ONLY = "poi-only"
    FULL = "full"

    @property
    def geocodes(self) -> bool:
        return self is not WarmMode.POI_ONLY

    @property
    def fetches_pois(self) -> bool:
        return self is not WarmMode.GEOCODING_ONLY


class Stage(str, Enum):
    GEOCODE = "geocode"
    POI = "poi"


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class CityState(str, Enum):
    PENDING = "pending"
    GEOCODED = "geocoded"
    GEOCODE_FAILED = "geocode_failed"
    POI_CACHED = "poi_cached"
    POI_FAILED = "poi_failed"
    SKIPPED = "skipped"


# ═══════════════ PER-CITY OUTCOME ═══════════════

class StepResult(BaseModel):
    """Outcome of one phase for one city."""
    status: StepStatus
    reason: str = ""
    attempts: int = 0


class CityOutcome(BaseModel):
    name: str
    geocode: StepResult | None = None
    poi: StepResult | None = None
    city: GeocodedCity | None = None
    poi_key: str = ""

    def _steps(self) -> list[StepResult]:
        return [s for s in (self.geocode, self.poi) if s is not None]

    @computed_field
    @property
    def state(self) -> CityState:
        if self.geocode and self.geocode.status is StepStatus.FAILED:
            return CityState.GEOCODE_FAILED
        if self.poi and self.poi.status is StepStatus.FAILED:
            return CityState.POI_FAILED
        steps = self._steps()
        if not steps:
            return CityState.PENDING
        if all(s.status is StepStatus.SKIPPED for s in steps):
            return CityState.SKIPPED
        if self.poi is not None:
            return CityState.POI_CACHED
        return CityState.GEOCODED

    @computed_field
    @property
    def result(self) -> StepStatus | None:
        """success | failed | skipped once any phase ran."""
        state = self.state
        if state is CityState.PENDING:
            return None
        if state in (CityState.GEOCODE_FAILED, CityState.POI_FAILED):
            return StepStatus.FAILED
        if state is CityState.SKIPPED:
            return StepStatus.SKIPPED
        return StepStatus.SUCCESS

    def failure(self) -> FailureRecord | None:
        for stage, step in ((Stage.GEOCODE, self.geocode), (Stage.POI, self.poi)):
            if step is not None and step.status is StepStatus.FAILED:
                return FailureRecord(
                    name=self.name, error=step.reason, attempts=step.attempts, stage=stage,
                )
        return None


# ═══════════════ FAILURE FILE ═══════════════

class FailureRecord(BaseModel):
    name: str
    error: str
    attempts: int = 1
    stage: Stage = Stage.GEOCODE


class FailureReport(BaseModel):
    """On-disk failure list: {timestamp, failures: [{name, error, attempts}]}."""
    timestamp: datetime = Field(default_factory=_utcnow)
    failures: list[FailureRecord] = Field(default_factory=list)


# ═══════════════ RUN ═══════════════

class WarmRun(BaseModel):
    """State of one warm-cache execution. Owned by the warmer while running."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    mode: WarmMode = WarmMode.FULL
    skip_existing: bool = False
    retry_failed_only: bool = False
    cities: list[CityOutcome] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @classmethod
    def for_cities(cls, names: list[str], **kwargs) -> WarmRun:
        return cls(cities=[CityOutcome(name=n) for n in names], **kwargs)

    def _count(self, status: StepStatus) -> int:
        return sum(1 for c in self.cities if c.result is status)

    @computed_field
    @property
    def succeeded(self) -> int:
        return self._count(StepStatus.SUCCESS)

    @computed_field
    @property
    def failed(self) -> int:
        return self._count(StepStatus.FAILED)

    @computed_field
    @property
    def skipped(self) -> int:
        return self._count(StepStatus.SKIPPED)

    @computed_field
    @property
    def failures(self) -> list[FailureRecord]:
        records = []
        for outcome in self.cities:
            record = outcome.failure()
            if record is not None:
                records.append(record)
        return records

    def summary(self) -> str:
        return (
            f"cities={len(self.cities)} succeeded={self.succeeded} "
            f"failed={self.failed} skipped={self.skipped}"
        )


# ═══════════════ JOBS ═══════════════

class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WarmRequest(BaseModel):
    """Warm-job trigger payload (accepts camelCase from the frontend)."""
    model_config = ConfigDict(populate_by_name=True)

    mode: WarmMode = WarmMode.FULL
    cities: list[str] | None = None
    skip_existing: bool = Field(default=False, alias="skipExisting")
    retry_failed_only: bool = Field(default=False, alias="retryFailedOnly")


class WarmJobSnapshot(BaseModel):
    job_id: str
    status: JobStatus
    request: WarmRequest
    created_at: datetime
    finished_at: datetime | None = None
    error: str = ""
    run: WarmRun | None = None
