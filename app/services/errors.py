class PipelineError(Exception):
    """Base class for pipeline failures."""


class StageValidationError(PipelineError):
    """Empty prompt or an unmet stage precondition; surfaced as a notice."""


class BackendError(PipelineError):
    """Provider or network failure while running a stage."""


class MalformedResponseError(PipelineError):
    """Provider answered, but not with the JSON shape we asked for."""


class SessionNotFound(KeyError):
    pass
