import os
import sqlite3
import time
import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from flask_sqlalchemy.session import Session as FsaSession

"""API multi-clínica (multi-tenant) e fábrica Flask.

Blueprints são importados dentro de create_app para evitar ciclos de
importação (models <-> rotas <-> auth).
"""


# Extensões globais (inicializadas no create_app)
#
# Session com retry automático em commits quando SQLite sinaliza bloqueio
class RetrySession(FsaSession):  # pragma: no cover - validado via testes de integração
    _retry_max = 5
    _retry_backoff = 0.1

    @staticmethod
    def _is_sqlite_busy(error: BaseException) -> bool:
        msg = str(error).lower()
        return (
            "database is locked" in msg
            or "database is busy" in msg
            or "sqlite_busy" in msg
            or "database table is locked" in msg
        )

    def commit(self) -> None:  # type: ignore[override]
        attempts = 0
        logger = logging.getLogger("db.retry")
        while True:
            try:
                super().commit()
                return
            except OperationalError as exc:
                if attempts < self._retry_max and self._is_sqlite_busy(exc):
                    attempts += 1
                    # Após erro a transação fica inválida: rollback antes de tentar novamente
                    super().rollback()
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug("SQLite busy detected; retry %s/%s", attempts, self._retry_max)
                    time.sleep(self._retry_backoff * (2 ** (attempts - 1)))
                    continue
                logger.error("SQLite commit failed after %s retries: %s", attempts, exc)
                raise


db = SQLAlchemy(session_options={"class_": RetrySession})
csrf = CSRFProtect()


# PRAGMAs do SQLite para todas as conexões criadas pelo SQLAlchemy:
# WAL para leitura concorrente, foreign_keys e busy_timeout para que uma
# escrita concorrente aguarde antes de lançar "database is locked".
@event.listens_for(Engine, "connect")
def _sqlite_pragmas_on_connect(dbapi_connection, connection_record):  # pragma: no cover - infra
    if isinstance(dbapi_connection, sqlite3.Connection):
        cur = dbapi_connection.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL")
        except sqlite3.DatabaseError:
            # bancos em memória não aceitam WAL
            pass
        cur.execute("PRAGMA foreign_keys=ON")
        cur.execute("PRAGMA busy_timeout=1000")  # 1s de espera por bloqueio
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.close()


def _configure_logging(app: Flask) -> None:
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.getLogger("odontosaas").setLevel(level)
    logging.getLogger("db.retry").setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


def _import_models() -> None:
    # Garante que todas as tabelas estejam registradas no metadata
    from .agenda import models as _agenda_models  # noqa: F401
    from .atendimentos import models as _atendimentos_models  # noqa: F401
    from .auth import models as _auth_models  # noqa: F401
    from .catalogo import models as _catalogo_models  # noqa: F401
    from .core import models as _core_models  # noqa: F401
    from .dentistas import models as _dentistas_models  # noqa: F401
    from .estoque import models as _estoque_models  # noqa: F401
    from .financeiro import models as _financeiro_models  # noqa: F401
    from .orcamentos import models as _orcamentos_models  # noqa: F401
    from .pacientes import models as _pacientes_models  # noqa: F401
    from .prontuarios import models as _prontuarios_models  # noqa: F401


def _register_commands(app: Flask) -> None:
    @app.cli.command("seed-catalog")
    def seed_catalog_command():
        """Cria as tabelas ausentes e insere CIDs e especialidades padrão."""
        from .catalogo.services import seed_catalog  # noqa: WPS433

        _import_models()
        db.create_all()
        result = seed_catalog()
        print(f"CIDs inseridos: {result['cids']} | especialidades inseridas: {result['specialties']}")


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    # Config padrão base
    app.config.from_object("config.Config")

    # Override opcional
    if config_object:
        app.config.from_object(config_object)

    # Garante existência da pasta instance
    os.makedirs(app.instance_path, exist_ok=True)

    _configure_logging(app)

    # Inicializa extensões
    db.init_app(app)
    csrf.init_app(app)

    # Segurança básica de sessão (pode ser ajustada em produção via env)
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")
    if app.config.get("ENV") == "production":  # pragma: no cover
        app.config.setdefault("SESSION_COOKIE_SECURE", True)
    app.json.sort_keys = False

    from .errors import register_error_handlers  # noqa: WPS433

    register_error_handlers(app)

    # Importa e registra blueprints tardiamente
    from .agenda.agenda import agenda_bp  # noqa: WPS433
    from .atendimentos.atendimentos import atendimentos_bp  # noqa: WPS433
    from .auth.auth import auth_bp  # noqa: WPS433
    from .catalogo.catalogo import catalogo_bp  # noqa: WPS433
    from .core.core import core_bp  # noqa: WPS433
    from .dentistas.dentistas import dentistas_bp  # noqa: WPS433
    from .estoque.estoque import estoque_bp  # noqa: WPS433
    from .financeiro.financeiro import financeiro_bp  # noqa: WPS433
    from .main.main import main_bp  # noqa: WPS433
    from .orcamentos.orcamentos import orcamentos_bp  # noqa: WPS433
    from .pacientes.pacientes import pacientes_bp  # noqa: WPS433
    from .prontuarios.prontuarios import prontuarios_bp  # noqa: WPS433
    from .reports.reports import reports_bp  # noqa: WPS433
    from .users.users import users_bp  # noqa: WPS433

    blueprints = [
        (core_bp, "/api"),
        (auth_bp, "/api/auth"),
        (users_bp, "/api/users"),
        (dentistas_bp, "/api/dentists"),
        (catalogo_bp, "/api"),
        (pacientes_bp, "/api/patients"),
        (agenda_bp, "/api/appointments"),
        (atendimentos_bp, "/api/attendances"),
        (prontuarios_bp, "/api/records"),
        (orcamentos_bp, "/api/treatment-plans"),
        (estoque_bp, "/api"),
        (financeiro_bp, "/api/payments"),
        (reports_bp, "/api/reports"),
        (main_bp, "/api/dashboard"),
    ]
    for blueprint, prefix in blueprints:
        # API JSON autenticada por sessão: sem token CSRF de formulário
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint, url_prefix=prefix)

    _register_commands(app)

    if app.config.get("TESTING") or app.config.get("AUTO_CREATE_SCHEMA"):
        with app.app_context():
            _import_models()
            db.create_all()

    return app
