from __future__ import annotations

from typing import Any

from .. import db
from ..utils_dates import isoformat, utcnow


class Dentist(db.Model):
    __tablename__ = "dentists"
    __table_args__ = (db.UniqueConstraint("clinic_id", "cro", name="uq_dentists_clinic_cro"),)

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    cro = db.Column(db.String(30), nullable=False)
    specialty = db.Column(db.String(100))
    working_hours = db.Column(db.JSON)
    bank_info = db.Column(db.JSON)
    commission = db.Column(db.Numeric(5, 2))  # % geral; procedimento pode sobrescrever
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("dentist", uselist=False))
    procedure_links = db.relationship(
        "DentistProcedure", backref="dentist", cascade="all, delete-orphan", lazy="selectin"
    )
    specialty_links = db.relationship(
        "DentistSpecialty", backref="dentist", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def name(self) -> str | None:
        return self.user.name if self.user else None

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cro": self.cro,
            "specialty": self.specialty,
            "user": {
                "id": self.user.id,
                "name": self.user.name,
                "email": self.user.email,
                "isActive": bool(self.user.is_active),
            }
            if self.user
            else None,
        }

    def to_dict(self, include_links: bool = False) -> dict[str, Any]:
        data = self.summary()
        data.update(
            {
                "clinicId": self.clinic_id,
                "userId": self.user_id,
                "workingHours": self.working_hours,
                "bankInfo": self.bank_info,
                "commission": float(self.commission) if self.commission is not None else None,
                "createdAt": isoformat(self.created_at),
                "updatedAt": isoformat(self.updated_at),
            }
        )
        if include_links:
            data["procedures"] = [link.procedure.to_dict() for link in self.procedure_links]
            data["specialties"] = [link.specialty.to_dict() for link in self.specialty_links]
        return data


class DentistProcedure(db.Model):
    __tablename__ = "dentist_procedures"
    __table_args__ = (
        db.UniqueConstraint("dentist_id", "procedure_id", name="uq_dentist_procedure"),
    )

    id = db.Column(db.Integer, primary_key=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False, index=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    procedure = db.relationship("Procedure")


class DentistSpecialty(db.Model):
    __tablename__ = "dentist_specialties"
    __table_args__ = (
        db.UniqueConstraint("dentist_id", "specialty_id", name="uq_dentist_specialty"),
    )

    id = db.Column(db.Integer, primary_key=True)
    dentist_id = db.Column(db.Integer, db.ForeignKey("dentists.id"), nullable=False, index=True)
    specialty_id = db.Column(db.Integer, db.ForeignKey("specialties.id"), nullable=False)

    specialty = db.relationship("Specialty")
