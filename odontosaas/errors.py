"""Taxonomia de erros da API.

Cada exceção carrega o código HTTP e um ``ErrorCode`` estável; os
handlers registrados em ``create_app`` convertem tudo para o envelope
``{"success": false, "error": ..., "code": ...}``. Serviços levantam estas
exceções diretamente, sem depender de comparação de mensagens.
"""

from __future__ import annotations

import logging
from enum import Enum

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger("odontosaas.api")


class ErrorCode(str, Enum):
    VALIDATION = "VALIDATION"
    BUSINESS_RULE = "BUSINESS_RULE"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


class AppError(Exception):
    status_code = 500
    code = ErrorCode.INTERNAL
    default_message = "Erro interno do servidor"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError, ValueError):
    status_code = 400
    code = ErrorCode.VALIDATION
    default_message = "Dados inválidos"


class BusinessRuleError(AppError, ValueError):
    """Regra de negócio violada (transição de status, estoque etc.)."""

    status_code = 400
    code = ErrorCode.BUSINESS_RULE
    default_message = "Operação não permitida"


class UnauthorizedError(AppError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    default_message = "Não autorizado"


class ForbiddenError(AppError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "Permissão insuficiente"


class NotFoundError(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Registro não encontrado"


def error_response(message: str, status_code: int, code: ErrorCode):
    return jsonify({"success": False, "error": message, "code": code.value}), status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        if exc.status_code >= 500:
            logger.error("Erro de aplicação: %s", exc.message)
        return error_response(exc.message, exc.status_code, exc.code)

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        # Fora da API mantém a página padrão do werkzeug
        if not request.path.startswith("/api"):
            return exc
        code = {
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.FORBIDDEN,
            404: ErrorCode.NOT_FOUND,
        }.get(exc.code or 500, ErrorCode.VALIDATION if (exc.code or 500) < 500 else ErrorCode.INTERNAL)
        message = {
            404: "Recurso não encontrado",
            405: "Método não permitido",
        }.get(exc.code or 500, exc.description or "Erro")
        return error_response(message, exc.code or 500, code)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):  # pragma: no cover - tratado acima
            return _handle_http_error(exc)
        logger.exception("Erro inesperado em %s %s", request.method, request.path)
        return error_response("Erro interno do servidor", 500, ErrorCode.INTERNAL)
