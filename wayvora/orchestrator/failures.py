"""Durable failure list shared between warm runs.

Single-writer assumption: at most one warm run per process and no
cross-process lock. Last writer wins.
"""

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from wayvora.orchestrator.schemas import FailureRecord, FailureReport

logger = logging.getLogger(__name__)


class FailurePersistenceError(Exception):
    """The failure file could not be read or written. Fatal for the job."""


class FailureStore:
    """JSON failure file at a fixed path; absence means no known failures."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> FailureReport | None:
        if not self.path.exists():
            return None
        try:
            return FailureReport.model_validate_json(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise FailurePersistenceError(f"cannot read {self.path}: {e}") from e
        except ValidationError as e:
            raise FailurePersistenceError(f"malformed failure file {self.path}: {str(e)[:200]}") from e

    def failed_names(self) -> list[str]:
        report = self.load()
        if report is None:
            return []
        # keep order, drop duplicates
        return list(dict.fromkeys(f.name for f in report.failures))

    def save(self, failures: list[FailureRecord]) -> FailureReport:
        """Overwrite the file with ``failures``."""
        report = FailureReport(failures=failures)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(report.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise FailurePersistenceError(f"cannot write {self.path}: {e}") from e
        logger.info("Failure file written | failures=%d | path=%s", len(failures), self.path)
        return report

    def clear(self) -> bool:
        """Delete the file. Returns True if it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FailurePersistenceError(f"cannot delete {self.path}: {e}") from e
        logger.info("Failure file removed | path=%s", self.path)
        return True
