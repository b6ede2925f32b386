"""Modelos centrais: clínica (tenant) e trilha de auditoria."""

import json

from .. import db
from ..utils_dates import isoformat, utcnow


class Clinic(db.Model):
    __tablename__ = "clinics"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    address = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "isActive": bool(self.is_active),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):  # pragma: no cover
        return f"<Clinic {self.name}>"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.String(50), nullable=False, index=True)
    target_id = db.Column(db.String(50))
    target_type = db.Column(db.String(50))
    # 'metadata' é reservado no declarative; coluna física mantém o nome
    extra = db.Column("metadata", db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self):
        try:
            metadata = json.loads(self.extra) if self.extra else None
        except ValueError:  # pragma: no cover - dado legado corrompido
            metadata = None
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "userId": self.user_id,
            "action": self.action,
            "targetId": self.target_id,
            "targetType": self.target_type,
            "metadata": metadata,
            "createdAt": isoformat(self.created_at),
        }
