"""Runtime settings and ``.armrc`` credential files."""

from armkit.config.rc import CredentialSource, RcFile
from armkit.config.settings import Settings

__all__ = ["CredentialSource", "RcFile", "Settings"]
