# exceptions.py
# Hierarquia de erros da aplicação

from typing import Optional


class DoceriaError(Exception):
    """Erro base da aplicação"""


class ConfigError(DoceriaError):
    pass


class RequestFailed(DoceriaError):
    """Requisição HTTP sem sucesso (status não-2xx ou falha de transporte)."""

    def __init__(self, target: str, status: Optional[int] = None, detail: str = ""):
        self.target = target
        self.status = status
        self.detail = detail
        message = f"Falha na requisição para {target}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class MalformedResponse(DoceriaError):
    """Corpo de resposta fora do formato esperado. Nunca chega ao chamador."""

    def __init__(self, target: str, body_type: str):
        self.target = target
        self.body_type = body_type
        super().__init__(f"Resposta inesperada de {target}: esperado lista, recebido {body_type}")


class AuthError(DoceriaError):
    """Falha genérica de autenticação (AuthOther)."""

    user_message = "Erro ao registrar. Tente novamente."

    def __init__(self, code: str = "", message: Optional[str] = None):
        self.code = code
        super().__init__(message or self.user_message)


class InvalidCredentials(AuthError):
    # Mensagem genérica, não revela se o email existe
    user_message = "Email ou senha inválidos."


class EmailInUse(AuthError):
    user_message = "Este email já está em uso."


class StorageError(DoceriaError):
    pass


class GenerationFailed(DoceriaError):
    pass
