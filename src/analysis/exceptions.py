"""Error taxonomy for the case analysis pipeline.

Only ``ConfigurationError`` escapes ``AnalysisOrchestrator.run_analysis``.
Reasoning-service and parse failures degrade a single phase, while
persistence failures and cancellation fail the whole job.
"""


class AnalysisError(Exception):
    """Base class for all analysis pipeline errors."""


class ConfigurationError(AnalysisError, ValueError):
    """The reasoning service (or another dependency) is not configured."""


class ExternalServiceError(AnalysisError):
    """The reasoning service failed, timed out, or returned nothing usable."""

    def __init__(self, message: str, *, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class ResponseParseError(AnalysisError):
    """A reasoning-service response was not valid JSON of the expected shape."""


class PersistenceError(AnalysisError):
    """Reading or writing an analysis job failed."""


class InputError(AnalysisError, ValueError):
    """The analysis input is unusable (e.g. no claimant statement)."""


class AnalysisInProgressError(AnalysisError):
    """Another run for the same case is already processing."""

    def __init__(self, case_id: str):
        super().__init__(f"Analysis for case {case_id} is already in progress")
        self.case_id = case_id


class AnalysisCancelledError(AnalysisError):
    """The run was cancelled between phases."""
