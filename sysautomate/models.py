import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from sysautomate.context import RunContext


class StepOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ActionResult:
    """What a step action hands back to the orchestrator."""

    ok: bool
    output: str = ""
    message: str = ""

    @classmethod
    def success(cls, output: str = "", message: str = "") -> "ActionResult":
        return cls(ok=True, output=output, message=message)

    @classmethod
    def failure(cls, message: str, output: str = "") -> "ActionResult":
        return cls(ok=False, output=output, message=message)


@dataclass
class Step:
    """
    One maintenance or audit task in the run plan.

    Steps are identified by their position in the plan, so two steps may
    share a name.
    """

    name: str
    action: Callable[["RunContext"], ActionResult]
    required: bool = False
    applicability: Optional[Callable[[], bool]] = None
    skip_hint: Optional[str] = None


@dataclass
class StepRecord:
    name: str
    outcome: StepOutcome
    output: Optional[str] = None
    message: str = ""
    elapsed: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "output": self.output,
            "message": self.message,
            "elapsed": round(self.elapsed, 3),
        }


@dataclass
class RunReport:
    """Accumulated outcome of a single orchestrator run."""

    started_at: Optional[datetime.datetime] = None
    ended_at: Optional[datetime.datetime] = None
    step_results: List[StepRecord] = field(default_factory=list)
    kernel_before: Optional[str] = None
    kernel_after: Optional[str] = None
    status: RunStatus = RunStatus.NOT_STARTED
    distro: Optional[str] = None
    log_file: Optional[Path] = None

    @property
    def reboot_recommended(self) -> bool:
        # Plain string comparison: build metadata differences still count.
        if self.kernel_before is None or self.kernel_after is None:
            return False
        return self.kernel_before != self.kernel_after

    @property
    def duration(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.ended_at or datetime.datetime.now()
        return (end - self.started_at).total_seconds()

    def start(self) -> None:
        self.started_at = datetime.datetime.now()
        self.status = RunStatus.RUNNING

    def record(self, record: StepRecord) -> None:
        self.step_results.append(record)

    def finalize(self, status: RunStatus) -> None:
        self.ended_at = datetime.datetime.now()
        self.status = status

    def counts(self) -> Dict[StepOutcome, int]:
        counts = {outcome: 0 for outcome in StepOutcome}
        for record in self.step_results:
            counts[record.outcome] += 1
        return counts

    def failed_steps(self) -> List[str]:
        return [r.name for r in self.step_results if r.outcome == StepOutcome.FAILURE]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distro": self.distro,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration": round(self.duration, 3),
            "kernel_before": self.kernel_before,
            "kernel_after": self.kernel_after,
            "reboot_recommended": self.reboot_recommended,
            "counts": {k.value: v for k, v in self.counts().items()},
            "log_file": str(self.log_file) if self.log_file else None,
            "steps": [r.to_dict() for r in self.step_results],
        }
