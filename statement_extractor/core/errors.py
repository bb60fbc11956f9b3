"""
Extraction error taxonomy

Only EmptyRequestError is fatal to a request. Every other error is raised by a
single stage and handled by the pipeline falling through to the next stage.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for statement extraction errors"""


class ConfigurationError(ExtractionError):
    """A required credential or setting is missing; the stage is skipped"""


class TransportError(ExtractionError):
    """An external service answered with a non-success status"""

    def __init__(self, message: str, status_code: Optional[int] = None, service: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.service = service


class StageTimeoutError(TransportError):
    """An external service did not answer within the configured timeout"""

    def __init__(self, message: str, service: str = ""):
        super().__init__(message, status_code=None, service=service)


class MalformedInputError(ExtractionError):
    """Document bytes cannot be parsed as the expected format"""


class SchemaViolation(ExtractionError):
    """Language-model output is not valid or complete statement JSON"""


class EmptyRequestError(ExtractionError):
    """The request carried no document bytes at all"""
