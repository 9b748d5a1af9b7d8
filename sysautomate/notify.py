import logging
import shutil
import subprocess

logger = logging.getLogger("sysautomate")

NOTIFY_TIMEOUT = 5


class Notifier:
    """
    Best-effort desktop notifications through ``notify-send``.

    Delivery problems are logged at debug level and never raised.
    """

    def __init__(self, title: str, enabled: bool = True) -> None:
        self.title = title
        self.enabled = enabled and shutil.which("notify-send") is not None
        if enabled and not self.enabled:
            logger.debug("notify-send not found; desktop notifications disabled.")

    def notify(self, message: str) -> None:
        if not self.enabled:
            return
        try:
            subprocess.run(
                ["notify-send", self.title, message],
                capture_output=True,
                timeout=NOTIFY_TIMEOUT,
                check=False,
            )
        except Exception as e:
            logger.debug(f"Notification '{message}' not delivered: {e}")
