class MaintenanceError(Exception):
    """Base exception for maintenance run errors."""

    pass


class PreconditionError(MaintenanceError):
    """Raised when the run cannot start (privileges, report directory, distro)."""

    pass


class ExecutionError(MaintenanceError):
    """Raised when a command cannot be launched or times out."""

    pass


class BackupError(MaintenanceError):
    """Raised when no configuration file could be backed up."""

    pass
