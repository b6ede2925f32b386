import sqlite3
import threading
import time

import pytest

from odontosaas import db
from odontosaas.core.models import Clinic
from odontosaas.utils_db import commit_with_retry, transactional


def _get_sqlite_path(uri: str) -> str:
    assert uri.startswith("sqlite:///"), "Only sqlite URIs are supported in this test"
    return uri.replace("sqlite:///", "")


def _hold_write_lock(path: str, table: str, seconds: float) -> None:
    con = sqlite3.connect(path)
    cur = con.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")  # acquire write lock
        cur.execute(f"CREATE TABLE IF NOT EXISTS {table}(id INTEGER)")
        time.sleep(seconds)  # menos que busy_timeout + retries
        con.commit()
    finally:
        con.close()


def test_pragmas_applied_on_connect(app):
    with app.app_context():
        with db.engine.connect() as conn:
            journal_mode = conn.exec_driver_sql("PRAGMA journal_mode").scalar()
            foreign_keys = conn.exec_driver_sql("PRAGMA foreign_keys").scalar()
            busy_timeout = conn.exec_driver_sql("PRAGMA busy_timeout").scalar()
        assert str(journal_mode).lower() == "wal"
        assert int(foreign_keys or 0) == 1
        assert int(busy_timeout or 0) >= 1000


def test_commit_with_retry_handles_busy(app):
    """Um escritor concorrente segura o lock; o commit deve aguardar e concluir."""
    with app.app_context():
        path = _get_sqlite_path(app.config["SQLALCHEMY_DATABASE_URI"])
        t = threading.Thread(target=_hold_write_lock, args=(path, "_lock_test", 0.8))
        t.start()
        time.sleep(0.1)  # give lock thread a head start

        clinic = Clinic()
        clinic.name = "Clínica Busy"
        db.session.add(clinic)
        commit_with_retry(max_retries=5, backoff_seconds=0.1)

        saved = db.session.get(Clinic, clinic.id)
        assert saved is not None and saved.name == "Clínica Busy"
        t.join()


def test_automatic_session_retry_without_helper(app):
    with app.app_context():
        path = _get_sqlite_path(app.config["SQLALCHEMY_DATABASE_URI"])
        t = threading.Thread(target=_hold_write_lock, args=(path, "_lock_test2", 0.6))
        t.start()
        time.sleep(0.1)

        clinic = Clinic()
        clinic.name = "AutoRetry"
        db.session.add(clinic)
        # Sem helper: RetrySession refaz o commit sozinho
        db.session.commit()

        saved = db.session.get(Clinic, clinic.id)
        assert saved is not None and saved.name == "AutoRetry"
        t.join()


def test_transactional_commits(app):
    with app.app_context():
        name = f"Clínica {time.time()}"
        with transactional():
            clinic = Clinic()
            clinic.name = name
            db.session.add(clinic)
        assert Clinic.query.filter_by(name=name).first() is not None


def test_transactional_rolls_back_on_error(app):
    with app.app_context():
        with pytest.raises(RuntimeError):
            with transactional():
                clinic = Clinic()
                clinic.name = "Rollback"
                db.session.add(clinic)
                db.session.flush()
                raise RuntimeError("falha no meio da transação")
        assert Clinic.query.filter_by(name="Rollback").first() is None
