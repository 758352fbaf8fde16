"""armkit exception hierarchy.

All public exceptions inherit from ArmError, giving callers a single
base class to catch when they want to handle any armkit-specific failure
without swallowing unrelated errors.
"""


class ArmError(Exception):
    """Base exception for all armkit errors."""


class ParseError(ArmError):
    """Raised when input cannot be parsed.

    Covers malformed versions, constraints, manifests, lockfiles and
    ruleset/promptset resource files.
    """


class ConfigError(ArmError):
    """Raised when the manifest references something it does not define.

    Covers unknown registries, unknown sinks, unsupported registry types
    and unsupported compile targets.
    """


class VersionKindError(ArmError):
    """Raised when a semantic constraint is applied to an opaque version."""


class NoMatchError(ArmError):
    """Raised when no candidate version satisfies a constraint."""


class IntegrityMismatchError(ArmError):
    """Raised when a resolved package does not match its lockfile digest.

    Never retried: a mismatch means the registry content changed under
    a pinned version.
    """


class BackendError(ArmError):
    """Raised for transport-level faults from a registry backend.

    Covers HTTP failures, git command failures and malformed remote
    responses. The install engine retries these with bounded backoff.
    """


class NotFoundError(ArmError):
    """Raised when a registry, package or version is absent."""


class FsError(ArmError):
    """Raised when a filesystem operation fails."""


class LockTimeoutError(ArmError):
    """Raised when a file lock cannot be acquired before its deadline."""


class CancelledError(ArmError):
    """Raised when an operation observes a cancelled token."""


class CompileError(ArmError):
    """Raised when a resource cannot be compiled for a target tool."""
