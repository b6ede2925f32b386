import json
import os
import sys
import tempfile
from decimal import Decimal

import pytest

# Ensure project root (parent of tests) is on sys.path before importing odontosaas
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from odontosaas import create_app, db  # noqa: E402

PASSWORD = "senha123"


@pytest.fixture()
def app():
    # Banco temporário isolado por teste
    tmpdir = tempfile.TemporaryDirectory()
    instance = tmpdir.name

    class TestConfig:
        TESTING = True
        SECRET_KEY = "test"
        WTF_CSRF_ENABLED = False
        ENFORCE_PASSWORD_POLICY = False  # desativa política em testes
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + os.path.join(instance, "main.db")
        SQLALCHEMY_TRACK_MODIFICATIONS = False
        LOG_LEVEL = "WARNING"

    flask_app = create_app(TestConfig)
    with flask_app.app_context():
        db.create_all()
    yield flask_app
    # Libera conexões para evitar lock em Windows ao remover diretório
    with flask_app.app_context():
        db.session.remove()
        db.engine.dispose()
    tmpdir.cleanup()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


class Seeder:
    """Cria dados mínimos direto no banco e devolve apenas ids."""

    def __init__(self, app):
        self.app = app

    def clinic(self, name="Clínica Sorriso", owner_email="dono@sorriso.com.br"):
        from odontosaas.auth.services import signup_clinic

        with self.app.app_context():
            clinic, owner = signup_clinic(
                clinic_name=name, name="Dono " + name, email=owner_email, password=PASSWORD
            )
            return {"clinic_id": clinic.id, "owner_id": owner.id, "owner_email": owner_email}

    def user(self, clinic_id, role, email, name=None, is_active=True):
        from odontosaas.auth.models import User

        with self.app.app_context():
            user = User()
            user.clinic_id = clinic_id
            user.name = name or email.split("@")[0].title()
            user.email = email
            user.role = role
            user.is_active = is_active
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            return user.id

    def dentist(self, clinic_id, email, cro="CRO-SP 12345", commission=None):
        from odontosaas.auth.models import UserRole
        from odontosaas.dentistas.models import Dentist

        user_id = self.user(clinic_id, UserRole.DENTIST, email)
        with self.app.app_context():
            dentist = Dentist()
            dentist.clinic_id = clinic_id
            dentist.user_id = user_id
            dentist.cro = cro
            dentist.commission = Decimal(str(commission)) if commission is not None else None
            db.session.add(dentist)
            db.session.commit()
            return {"dentist_id": dentist.id, "user_id": user_id, "email": email}

    def patient(self, clinic_id, name="Maria da Silva", is_active=True):
        from odontosaas.pacientes.models import Patient

        with self.app.app_context():
            patient = Patient()
            patient.clinic_id = clinic_id
            patient.name = name
            patient.is_active = is_active
            db.session.add(patient)
            db.session.commit()
            return patient.id

    def procedure(self, clinic_id, name="Restauração", base_value="150.00", dentist_ids=()):
        from odontosaas.catalogo.models import Procedure
        from odontosaas.dentistas.models import DentistProcedure

        with self.app.app_context():
            proc = Procedure()
            proc.clinic_id = clinic_id
            proc.name = name
            proc.base_value = Decimal(base_value)
            proc.commission_percentage = Decimal("0")
            proc.is_active = True
            db.session.add(proc)
            db.session.flush()
            for dentist_id in dentist_ids:
                link = DentistProcedure()
                link.dentist_id = dentist_id
                link.procedure_id = proc.id
                db.session.add(link)
            db.session.commit()
            return proc.id


@pytest.fixture()
def seed(app):
    return Seeder(app)


def post_json(client, url, payload=None, method="post"):
    return getattr(client, method)(
        url, data=json.dumps(payload or {}), content_type="application/json"
    )


def login(client, email, password=PASSWORD):
    resp = post_json(client, "/api/auth/login", {"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]


@pytest.fixture()
def clinic(seed):
    """Clínica com dono, admin, recepção, um dentista e um paciente."""
    from odontosaas.auth.models import UserRole

    data = seed.clinic()
    cid = data["clinic_id"]
    data["admin_email"] = "admin@sorriso.com.br"
    data["reception_email"] = "recepcao@sorriso.com.br"
    seed.user(cid, UserRole.ADMIN, data["admin_email"])
    seed.user(cid, UserRole.RECEPTIONIST, data["reception_email"])
    dentist = seed.dentist(cid, "dentista@sorriso.com.br")
    data["dentist_id"] = dentist["dentist_id"]
    data["dentist_user_id"] = dentist["user_id"]
    data["dentist_email"] = dentist["email"]
    data["patient_id"] = seed.patient(cid)
    data["procedure_id"] = seed.procedure(cid, dentist_ids=[dentist["dentist_id"]])
    return data
