"""
Error taxonomy for ADVDESK.

Every error carries a stable code, an HTTP status, a retry hint and a
user-safe message. Diagnostic detail stays in the server logs.
"""


class AdvdeskError(Exception):
    """Base class for all errors surfaced to callers."""

    code = "internal"
    http_status = 500
    retryable = False
    default_message = "Erro interno. Tente novamente."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


# =============================================================================
# Identity and authorization
# =============================================================================


class Unauthenticated(AdvdeskError):
    code = "unauthenticated"
    http_status = 401
    default_message = "Autenticação necessária."


class NotFound(AdvdeskError):
    code = "not_found"
    http_status = 404
    default_message = "Recurso não encontrado."


class PermissionDenied(AdvdeskError):
    code = "permission_denied"
    http_status = 403
    default_message = "Acesso negado."


class InvalidArgument(AdvdeskError):
    code = "invalid_argument"
    http_status = 400
    default_message = "Campos obrigatórios ausentes ou inválidos."


class ResourceExhausted(AdvdeskError):
    code = "resource_exhausted"
    http_status = 429
    retryable = True

    def __init__(self, action: str, limit: int, retry_after: int) -> None:
        self.action = action
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(
            f"Limite de {limit} {action} por hora atingido. "
            f"Tente novamente em {retry_after} segundos."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


# =============================================================================
# Pipeline stages
# =============================================================================


class StageError(AdvdeskError):
    """An AI stage failed; the record keeps its last good state."""

    retryable = True
    stage = "stage"


class AnalysisFailed(StageError):
    code = "analysis_failed"
    stage = "analysis"
    default_message = "Erro ao analisar o caso. Tente novamente."


class StructuringFailed(StageError):
    code = "structuring_failed"
    stage = "structuring"
    default_message = "Erro ao gerar estrutura. Tente novamente."


class GenerationFailed(StageError):
    code = "generation_failed"
    stage = "generation"
    default_message = "Erro ao gerar o documento. Tente novamente."


class RenderFailed(StageError):
    code = "render_failed"
    stage = "render"
    default_message = "Erro ao gerar o arquivo do documento. Tente novamente."


class StageTimeout(AdvdeskError):
    code = "deadline_exceeded"
    http_status = 504
    retryable = True
    default_message = "A operação excedeu o tempo limite. Tente novamente."


class InternalError(AdvdeskError):
    retryable = True


class AttachmentUnavailable(AdvdeskError):
    """A single attachment could not be fetched; absorbed by the preprocessor."""

    code = "attachment_unavailable"
    http_status = 404
    default_message = "Arquivo anexado indisponível."

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{self.default_message} ({path})")
