from __future__ import annotations

from typing import Any

from sqlalchemy import and_

from .. import db
from ..utils_dates import isoformat, utcnow


class MovementType:
    IN = "IN"
    OUT = "OUT"

    ALL = (IN, OUT)


class InventoryItem(db.Model):
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("clinic_id", "name", name="uq_inventory_items_clinic_name"),
        db.CheckConstraint("current_quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))
    unit = db.Column(db.String(20), nullable=False)
    current_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_quantity = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.min_quantity is not None and self.current_quantity <= self.min_quantity

    @classmethod
    def low_stock_clause(cls):
        # Avaliado na consulta, nunca armazenado
        return and_(cls.min_quantity.isnot(None), cls.current_quantity <= cls.min_quantity)

    def summary(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "unit": self.unit}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "currentQuantity": self.current_quantity,
            "minQuantity": self.min_quantity,
            "isActive": bool(self.is_active),
            "isLowStock": self.is_low_stock,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class InventoryMovement(db.Model):
    __tablename__ = "inventory_movements"
    __table_args__ = (db.CheckConstraint("quantity >= 1", name="ck_inventory_movement_quantity"),)

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    type = db.Column(db.String(3), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"))
    notes = db.Column(db.String(1000))
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    item = db.relationship("InventoryItem", backref=db.backref("movements", lazy="dynamic"))
    created_by = db.relationship("User")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clinicId": self.clinic_id,
            "itemId": self.item_id,
            "item": self.item.summary() if self.item else None,
            "type": self.type,
            "quantity": self.quantity,
            "appointmentId": self.appointment_id,
            "notes": self.notes,
            "createdById": self.created_by_id,
            "createdBy": {"id": self.created_by.id, "name": self.created_by.name}
            if self.created_by
            else None,
            "createdAt": isoformat(self.created_at),
        }
