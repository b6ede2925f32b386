import time
import logging
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from . import db
from .errors import NotFoundError


def get_or_404(model, ident, clinic_id: int | None = None, message: str | None = None):
    """Busca por id usando Session.get, restrita à clínica quando informada.

    Registro de outra clínica é tratado exatamente como inexistente, para
    não vazar a existência de dados entre tenants.
    """
    try:
        ident = int(ident)
    except (TypeError, ValueError):
        raise NotFoundError(message)
    obj = db.session.get(model, ident)
    if obj is None:
        raise NotFoundError(message)
    if clinic_id is not None and getattr(obj, "clinic_id", None) != clinic_id:
        raise NotFoundError(message)
    return obj


def _is_sqlite_busy(error: BaseException) -> bool:
    # Detects SQLITE_BUSY or SQLITE_LOCKED conditions surfaced via SQLAlchemy
    msg = str(error).lower()
    return ("database is locked" in msg) or ("database is busy" in msg) or ("sqlite_busy" in msg)


def commit_with_retry(max_retries: int = 5, backoff_seconds: float = 0.1) -> None:
    """Commit current session with retry on transient SQLite lock.

    `db.session` is a `RetrySession`, whose `commit` already retries BUSY
    errors (up to 5 times). This loop is an outer layer that only runs once
    the session gives up, so a persistent lock costs at most
    (max_retries + 1) x 6 commit attempts before the error propagates.
    """
    attempt = 0
    logger = logging.getLogger("db.retry")
    while True:
        try:
            db.session.commit()
            return
        except OperationalError as exc:  # pragma: no cover - relies on runtime contention
            if attempt < max_retries and _is_sqlite_busy(exc):
                attempt += 1
                time.sleep(backoff_seconds * (2 ** (attempt - 1)))
                continue
            logger.error("SQLite commit failed after %s retries: %s", attempt, exc)
            raise


@contextmanager
def transactional(max_retries: int = 3, backoff_seconds: float = 0.2):
    """Context manager for a commit-with-retry transaction.

    Usage:
        with transactional():
            # make changes on db.session
            ...

    Any exception inside the block (including AppError subclasses raised by
    services) rolls the whole unit back.
    """
    try:
        yield
        commit_with_retry(max_retries=max_retries, backoff_seconds=backoff_seconds)
    except Exception:
        db.session.rollback()
        raise
