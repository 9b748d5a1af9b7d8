"""Linux maintenance and security-audit runner for Fedora, Debian and Arch systems."""

from sysautomate.config import APP_NAME, VERSION

__version__ = VERSION
__all__ = ["APP_NAME", "__version__"]
