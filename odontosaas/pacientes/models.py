from datetime import date

from .. import db
from ..utils_dates import isoformat, utcnow


class Patient(db.Model):
    __tablename__ = "patients"
    __table_args__ = (db.UniqueConstraint("clinic_id", "cpf", name="uq_patients_clinic_cpf"),)

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    cpf = db.Column(db.String(14))
    birth_date = db.Column(db.Date)
    address = db.Column(db.String(500))
    notes = db.Column(db.String(1000))
    is_active = db.Column(db.Boolean, nullable=False, default=True)  # soft delete
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def age(self) -> int | None:
        if not self.birth_date:
            return None
        today = date.today()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years

    def summary(self):
        return {"id": self.id, "name": self.name, "email": self.email, "phone": self.phone}

    def to_dict(self):
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "cpf": self.cpf,
            "birthDate": isoformat(self.birth_date),
            "age": self.age(),
            "address": self.address,
            "notes": self.notes,
            "isActive": bool(self.is_active),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):  # pragma: no cover
        return f"<Patient {self.name}>"
