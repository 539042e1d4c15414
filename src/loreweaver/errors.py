"""
Error taxonomy for loreweaver.

Most of these are recovered close to where they happen (a failed source
read becomes an empty fragment, an unparsable analysis axis becomes a
neutral default). Only backend transport failures propagate by default.
"""


class LoreweaverError(Exception):
    """Base class for all loreweaver errors."""
    pass


class SourceRetrievalError(LoreweaverError):
    """A single knowledge-source call failed."""
    def __init__(self, source: str, operation: str, cause: Exception | None = None):
        self.source = source
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{source} {operation} failed{detail}")


class ClassificationParseError(LoreweaverError):
    """Lore classifier output was not a usable JSON object."""
    pass


class BackendTransportError(LoreweaverError):
    """Network or HTTP failure talking to the completion backend."""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ResponseFormatError(LoreweaverError):
    """Generated content failed post-processing validation."""
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid response")


class AnalysisParseError(LoreweaverError):
    """One analysis axis returned JSON that could not be parsed."""
    def __init__(self, axis: str, message: str = ""):
        self.axis = axis
        super().__init__(f"{axis} analysis unparsable{': ' + message if message else ''}")


class JSONExtractionError(LoreweaverError):
    """No JSON object could be recovered from model output."""
    pass


class TemplateNotFoundError(LoreweaverError):
    """A named prompt template does not exist."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Template {name} not found")
