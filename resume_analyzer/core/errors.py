from __future__ import annotations


class ResumeAnalyzerError(RuntimeError):
    """Base for every classified failure of the analysis pipeline.

    ``status_code`` is the HTTP status the error maps to and ``code`` a stable
    machine-readable identifier. ``str(exc)`` is the message shown to callers.
    """

    status_code = 500
    code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        super().__init__(message or self.default_message)
        if code:
            self.code = code


class ValidationError(ResumeAnalyzerError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class MissingFieldsError(ValidationError):
    code = "missing_fields"
    default_message = "Missing required fields"


class UploadRejected(ValidationError):
    code = "upload_rejected"
    default_message = "File rejected"

    def __init__(self, message: str | None = None, *, constraint: str, title: str | None = None):
        super().__init__(message)
        self.constraint = constraint
        self.title = title or "Upload rejected"


class AuthError(ResumeAnalyzerError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class NotFoundError(ResumeAnalyzerError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class StorageError(ResumeAnalyzerError):
    code = "storage_error"
    default_message = "Failed to store file"


class ExtractionError(ResumeAnalyzerError):
    code = "extraction_error"
    default_message = "Unable to extract text from this file format."


class GenerationServiceError(ResumeAnalyzerError):
    code = "generation_failed"
    default_message = "AI analysis failed"


class RateLimited(GenerationServiceError):
    status_code = 429
    code = "rate_limited"
    default_message = "Rate limit exceeded. Please try again later."


class QuotaExceeded(GenerationServiceError):
    status_code = 402
    code = "quota_exceeded"
    default_message = "AI service payment required. Please contact support."


class AnalysisFormatError(ResumeAnalyzerError):
    code = "invalid_analysis"
    default_message = "Invalid analysis format from AI"


class MalformedResponse(AnalysisFormatError):
    code = "malformed_response"


class SchemaViolation(AnalysisFormatError):
    code = "schema_violation"

    def __init__(self, field: str, problem: str = "is missing or has the wrong type"):
        super().__init__(f"Invalid analysis format from AI: '{field}' {problem}")
        self.field = field


class PersistenceError(ResumeAnalyzerError):
    code = "persistence_failed"
    default_message = "Failed to save analysis"
