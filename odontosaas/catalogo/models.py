"""Catálogos: especialidades e CIDs (globais) e procedimentos (por clínica)."""

from __future__ import annotations

from typing import Any

from .. import db
from ..utils_api import money_float
from ..utils_dates import isoformat, utcnow


class Specialty(db.Model):
    __tablename__ = "specialties"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "description": self.description}


class Procedure(db.Model):
    __tablename__ = "procedures"

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    specialty_id = db.Column(db.Integer, db.ForeignKey("specialties.id"))
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))
    base_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    commission_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    specialty = db.relationship("Specialty")

    __table_args__ = (
        db.CheckConstraint("base_value >= 0", name="ck_procedures_base_value_nonneg"),
        db.CheckConstraint(
            "commission_percentage >= 0 AND commission_percentage <= 100",
            name="ck_procedures_commission_range",
        ),
    )

    def snapshot(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "baseValue": money_float(self.base_value),
            "commissionPercentage": money_float(self.commission_percentage),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "specialtyId": self.specialty_id,
            "specialty": self.specialty.to_dict() if self.specialty else None,
            "name": self.name,
            "description": self.description,
            "baseValue": money_float(self.base_value),
            "commissionPercentage": money_float(self.commission_percentage),
            "isActive": bool(self.is_active),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class Cid(db.Model):
    """Classificação Internacional de Doenças (CID-10), catálogo global."""

    __tablename__ = "cids"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(10), nullable=False, unique=True, index=True)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(150))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "category": self.category,
        }
