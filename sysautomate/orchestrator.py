import logging
import time
from typing import Callable, List, Optional

from sysautomate.backends import latest_kernel_or_running
from sysautomate.context import RunContext
from sysautomate.models import ActionResult, RunReport, RunStatus, Step, StepOutcome, StepRecord
from sysautomate.system import current_kernel_version

logger = logging.getLogger("sysautomate")


class MaintenanceOrchestrator:
    """
    Runs a fixed, ordered list of maintenance steps and records each outcome.

    A failing step is recorded and the run moves on; only a failing step
    marked ``required`` stops the remaining steps, leaving the report
    ``ABORTED``. Kernel versions are probed before the first and after the
    last step to decide whether a reboot is recommended.
    """

    def __init__(
        self,
        ctx: RunContext,
        kernel_before: Optional[Callable[[], Optional[str]]] = None,
        kernel_after: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self.ctx = ctx
        self.steps: List[Step] = []
        self.kernel_before = kernel_before or current_kernel_version
        self.kernel_after = kernel_after or (lambda: latest_kernel_or_running(ctx.backend))

    def register(self, step: Step) -> Step:
        self.steps.append(step)
        return step

    def run(self) -> RunReport:
        report = RunReport(distro=self.ctx.backend.name, log_file=self.ctx.log_file)
        report.start()
        report.kernel_before = self._probe_kernel("running", self.kernel_before)
        logger.info(f"Running kernel: {report.kernel_before}")

        status = RunStatus.COMPLETED
        total = len(self.steps)
        for index, step in enumerate(self.steps, 1):
            record = self._run_step(step)
            report.record(record)
            if record.outcome == StepOutcome.FAILURE and step.required:
                self.ctx.ui.error(
                    f"Required step '{step.name}' failed; skipping the remaining {total - index} step(s)."
                )
                status = RunStatus.ABORTED
                break

        report.kernel_after = self._probe_kernel("installed", self.kernel_after)
        logger.info(f"Latest installed kernel: {report.kernel_after}")
        report.finalize(status)

        if report.reboot_recommended:
            self._notify("Reboot recommended: new kernel installed.")
        self._notify(f"{self.ctx.backend.title} maintenance {status.value} in {report.duration:.0f}s")
        return report

    def _run_step(self, step: Step) -> StepRecord:
        ui = self.ctx.ui
        ui.section(step.name)

        if step.applicability is not None:
            try:
                applicable = step.applicability()
            except Exception as e:
                ui.error(f"Could not determine whether '{step.name}' applies: {e}")
                return StepRecord(step.name, StepOutcome.FAILURE, message=f"Applicability check failed: {e}")
            if not applicable:
                hint = step.skip_hint or "Not applicable on this system."
                ui.warning(hint)
                return StepRecord(step.name, StepOutcome.SKIPPED, message=hint)

        self._notify(step.name)
        start = time.monotonic()
        try:
            result = _as_result(step.action(self.ctx))
        except Exception as e:
            logger.debug(f"Step '{step.name}' raised", exc_info=True)
            result = ActionResult.failure(f"{type(e).__name__}: {e}")
        elapsed = time.monotonic() - start

        if result.ok:
            if result.message:
                ui.info(result.message)
            ui.success(f"Finished: {step.name} (took {elapsed:.2f}s)")
            outcome = StepOutcome.SUCCESS
        else:
            ui.error(f"Failed: {step.name} (after {elapsed:.2f}s): {result.message}")
            outcome = StepOutcome.FAILURE
        return StepRecord(step.name, outcome, output=result.output or None, message=result.message, elapsed=elapsed)

    def _notify(self, message: str) -> None:
        try:
            self.ctx.notifier.notify(message)
        except Exception as e:
            logger.debug(f"Notification '{message}' not delivered: {e}")

    def _probe_kernel(self, label: str, probe: Callable[[], Optional[str]]) -> Optional[str]:
        try:
            return probe()
        except Exception as e:
            self.ctx.ui.warning(f"Could not determine {label} kernel version: {e}")
            return None


def _as_result(value: object) -> ActionResult:
    if isinstance(value, ActionResult):
        return value
    if value is None:
        return ActionResult.success()
    if isinstance(value, bool):
        return ActionResult(ok=value, message="" if value else "Step reported failure.")
    return ActionResult.success(output=str(value))
