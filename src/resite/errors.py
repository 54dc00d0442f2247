"""Exception taxonomy for the regeneration pipeline."""


class ResiteError(Exception):
    """Base class for every error raised by the pipeline."""


class AnalysisError(ResiteError):
    """The analysis collaborator returned a malformed or empty response."""


class GenerationError(ResiteError):
    """Site compilation or HTML synthesis failed."""


class RefinementError(ResiteError):
    """A single refinement request failed. Recovered by the refinement loop."""


class PipelineStateError(ResiteError):
    """An operation was attempted from a step that does not allow it."""
