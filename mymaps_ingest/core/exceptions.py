"""Pipeline exception taxonomy.

Every domain exception inherits from ``PipelineError`` and carries
structured context (stage, code, hint) so the orchestrator can decide
whether a failure ends the run and report it consistently.

Taxonomy categories
-------------------
- ``FatalError``        — aborts the layer run (download, conversion, write, config).
- ``RecoverableError``  — handled locally, only counted in the run summary.

Geometry invalidity is deliberately absent: rejected features are
routine filtering, not errors.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and the run summary.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"fetch_source"``, ``"convert"``).
        code: Machine-readable error code (e.g. ``"SOURCE_DOWNLOAD_FAILED"``).
        hint: Likely cause / remediation shown to the operator.
        fatal: Whether the error aborts the current layer run.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""
    #: Default hint for subclasses (override via class attribute or kwarg).
    default_hint: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        hint: str = "",
        fatal: bool = True,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.hint = hint or self.default_hint
        self.fatal = fatal
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, FatalError):
            return "fatal"
        if isinstance(self, RecoverableError):
            return "recoverable"
        return "fatal" if self.fatal else "recoverable"

    def describe(self) -> str:
        """Return the message followed by the hint, when one is set."""
        if self.hint:
            return f"{self.message} ({self.hint})"
        return self.message

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "hint": self.hint,
            "fatal": self.fatal,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class FatalError(PipelineError):
    """Failure that stops the layer run."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class RecoverableError(PipelineError):
    """Failure that is logged and counted but never stops the run."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete pipeline errors
# ---------------------------------------------------------------------------


class DownloadError(FatalError):
    """The remote source was unreachable or rejected the request."""

    default_stage = "fetch_source"
    default_code = "SOURCE_DOWNLOAD_FAILED"
    default_hint = (
        "check that the map ID is correct, the map is publicly accessible "
        "and the network is reachable"
    )


class ConversionError(FatalError):
    """The external KML → GeoJSON tool failed or produced unusable output."""

    default_stage = "convert"
    default_code = "CONVERSION_FAILED"
    default_hint = "the KML may be empty or corrupted, or GDAL may be missing or incompatible"


class WriteError(FatalError):
    """Local persistence failed."""

    default_stage = "write_collection"
    default_code = "WRITE_FAILED"
    default_hint = "check that the output directory exists and is writable"


class MediaAssetError(RecoverableError):
    """A single media URL could not be localised.

    Attributes:
        url: The media URL that failed.
    """

    default_stage = "fetch_media"
    default_code = "MEDIA_ASSET_FAILED"

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.url}] {self.message}"
