"""Pipeline error taxonomy."""


class PipelineError(Exception):
    """Base class for every error raised by a pipeline stage."""


class ParseError(PipelineError):
    """Generative output could not be decoded into the expected structure."""

    def __init__(self, message, raw=""):
        super().__init__(message)
        self.raw = raw


class PlanParseError(ParseError):
    pass


class GenerationParseError(ParseError):
    pass


class ReviewParseError(ParseError):
    pass


class ExternalServiceError(PipelineError):
    """The generative service, store or automation engine is unreachable."""

    def __init__(self, service, message):
        super().__init__(f"{service}: {message}")
        self.service = service


class PartialArtifactError(PipelineError):
    """One artifact failed to write or verify. Recorded, never raised past a stage."""

    def __init__(self, artifact_path, message):
        super().__init__(f"{artifact_path}: {message}")
        self.artifact_path = artifact_path


class CriticalReviewIssue(PipelineError):
    """The reviewer requires regeneration instead of patching."""

    def __init__(self, issues):
        super().__init__("Review found critical issues; regeneration required")
        self.issues = list(issues)


class InvalidTransition(ValueError):
    """A Task status change that would move backward or leave a terminal state."""
