import os


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.getcwd(), "instance", "odontosaas.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Cria tabelas ao iniciar (não há ferramenta de migração)
    AUTO_CREATE_SCHEMA = _env_flag("AUTO_CREATE_SCHEMA", "true")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    # --- Segurança / Autenticação ---
    # Exige sessão válida para toda a API (exceto /api/auth e /api/health)
    REQUIRE_LOGIN = _env_flag("REQUIRE_LOGIN", "true")
    ENFORCE_PASSWORD_POLICY = _env_flag("ENFORCE_PASSWORD_POLICY", "false")
    PASSWORD_MIN_LENGTH = 6
    # Valida dígitos verificadores do CPF de pacientes
    VALIDATE_CPF = _env_flag("VALIDATE_CPF", "true")
    MAX_FAILED_LOGINS = 5
    LOCKOUT_MINUTES = 15
    SESSION_TIMEOUT_MIN = 60  # inatividade
    # --- API ---
    DEFAULT_PAGE_LIMIT = 5  # listas "próximos"/"recentes"
    MAX_PAGE_LIMIT = 50
