from sysautomate.models import RunReport, RunStatus, StepOutcome, StepRecord


def finished_report(before, after):
    report = RunReport(distro="fedora", kernel_before=before, kernel_after=after)
    report.start()
    report.record(StepRecord("Disk usage", StepOutcome.SUCCESS, elapsed=0.2))
    report.record(StepRecord("Updating Snaps [beta]", StepOutcome.SKIPPED, message="Snap not installed."))
    report.record(StepRecord("CPU info", StepOutcome.FAILURE, message="Failed: lscpu"))
    report.finalize(RunStatus.COMPLETED)
    return report


def test_summary_lists_steps_and_totals(ui, console):
    ui.summary(finished_report("6.9.1-100", "6.9.1-100"))
    out = console.file.getvalue()
    assert "Updating Snaps [beta]" in out
    assert "1 Succeeded" in out
    assert "1 Failed" in out
    assert "1 Skipped" in out
    assert "No reboot required" in out


def test_summary_recommends_reboot(ui, console):
    ui.summary(finished_report("6.9.1-100", "6.10.0-101"))
    assert "Please reboot" in console.file.getvalue()


def test_header_renders_banner(ui, console):
    ui.header("Fedora Automate")
    out = console.file.getvalue()
    assert out.strip()
    assert "Maintenance & Security Audit" in out


def test_messages_keep_brackets(ui, console):
    ui.warning("value [not markup]")
    assert "[not markup]" in console.file.getvalue()
