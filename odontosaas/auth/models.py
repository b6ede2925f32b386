from datetime import timedelta

from werkzeug.security import check_password_hash, generate_password_hash

from .. import db
from ..utils_dates import isoformat, utcnow


class UserRole:
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    DENTIST = "DENTIST"
    RECEPTIONIST = "RECEPTIONIST"

    ALL = (OWNER, ADMIN, DENTIST, RECEPTIONIST)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), nullable=False, default=UserRole.RECEPTIONIST)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    # Segurança adicional
    failed_login_count = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime)
    last_password_change = db.Column(db.DateTime)

    clinic = db.relationship("Clinic", backref=db.backref("users", lazy="dynamic"))

    def _validate_password_policy(self, password: str) -> None:
        """Valida regras de senha (configuráveis via app.config).

        Tamanho mínimo sempre vale; as regras extras (dígito, letra e não
        conter o email) só com ENFORCE_PASSWORD_POLICY=True.
        """
        from flask import current_app

        min_len = current_app.config.get("PASSWORD_MIN_LENGTH", 6)
        if len(password or "") < min_len:
            raise ValueError(f"Senha deve ter no mínimo {min_len} caracteres")
        if not current_app.config.get("ENFORCE_PASSWORD_POLICY"):
            return
        local_part = (self.email or "").split("@")[0].lower()
        if local_part and local_part in password.lower():
            raise ValueError("Senha não pode conter o email")
        if not any(c.isdigit() for c in password):
            raise ValueError("Senha precisa de dígito")
        if not any(c.isalpha() for c in password):
            raise ValueError("Senha precisa de letra")

    def set_password(self, password: str) -> None:
        self._validate_password_policy(password)
        self.password_hash = generate_password_hash(password)
        self.last_password_change = utcnow()

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_locked(self) -> bool:
        return bool(self.locked_until and self.locked_until > utcnow())

    # --- Controle de tentativas de login ---
    def register_failed_login(self, max_attempts: int, lock_minutes: int) -> None:
        self.failed_login_count = (self.failed_login_count or 0) + 1
        if self.failed_login_count >= max_attempts:
            self.locked_until = utcnow() + timedelta(minutes=lock_minutes)
            self.failed_login_count = 0  # reinicia após bloqueio

    def reset_failed_login(self) -> None:
        self.failed_login_count = 0
        self.locked_until = None

    def has_permission(self, permission: str) -> bool:
        from .permissions import has_permission

        return has_permission(self.role, permission)

    def to_dict(self):
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isActive": bool(self.is_active),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):  # pragma: no cover
        return f"<User {self.email} ({self.role})>"
