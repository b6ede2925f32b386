"""Estoque: itens e movimentações (entrada/saída)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_

from .. import db
from ..agenda.models import Appointment
from ..errors import BusinessRuleError, NotFoundError
from ..utils_dates import end_of_day
from ..utils_db import commit_with_retry, get_or_404, transactional
from .models import InventoryItem, InventoryMovement, MovementType

logger = logging.getLogger("odontosaas.inventory")

NOT_FOUND = "Item de estoque não encontrado"


def list_items(
    clinic_id: int,
    *,
    search: str | None = None,
    is_active: bool | None = None,
    low_stock: bool | None = None,
) -> list[InventoryItem]:
    q = InventoryItem.query.filter(InventoryItem.clinic_id == clinic_id)
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(
            or_(
                func.lower(InventoryItem.name).like(like),
                func.lower(InventoryItem.description).like(like),
            )
        )
    if is_active is not None:
        q = q.filter(InventoryItem.is_active.is_(is_active))
    if low_stock:
        q = q.filter(InventoryItem.low_stock_clause())
    return q.order_by(InventoryItem.name.asc()).all()


def _name_taken(clinic_id: int, name: str, exclude_id: int | None = None) -> bool:
    q = InventoryItem.query.filter(
        InventoryItem.clinic_id == clinic_id, func.lower(InventoryItem.name) == name.lower()
    )
    if exclude_id is not None:
        q = q.filter(InventoryItem.id != exclude_id)
    return q.first() is not None


def _apply_fields(item: InventoryItem, data: dict[str, Any]) -> None:
    if data.get("name"):
        name = data["name"].strip()
        if _name_taken(item.clinic_id, name, exclude_id=item.id):
            raise BusinessRuleError("Já existe um item com este nome na clínica")
        item.name = name
    if "description" in data:
        item.description = (data["description"] or "").strip() or None
    if data.get("unit"):
        item.unit = data["unit"].strip()
    if data.get("current_quantity") is not None:
        item.current_quantity = data["current_quantity"]
    if "min_quantity" in data:
        item.min_quantity = data["min_quantity"]
    if "is_active" in data:
        item.is_active = bool(data["is_active"])


def create_item(clinic_id: int, data: dict[str, Any]) -> InventoryItem:
    item = InventoryItem()
    item.clinic_id = clinic_id
    item.current_quantity = 0
    item.is_active = True
    _apply_fields(item, data)
    db.session.add(item)
    commit_with_retry()
    return item


def update_item(item: InventoryItem, data: dict[str, Any]) -> InventoryItem:
    _apply_fields(item, data)
    commit_with_retry()
    return item


def deactivate_item(item: InventoryItem) -> InventoryItem:
    item.is_active = False
    commit_with_retry()
    return item


def list_movements(
    clinic_id: int,
    *,
    item_id: int | None = None,
    movement_type: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[InventoryMovement]:
    q = InventoryMovement.query.filter(InventoryMovement.clinic_id == clinic_id)
    if item_id is not None:
        q = q.filter(InventoryMovement.item_id == item_id)
    if movement_type:
        q = q.filter(InventoryMovement.type == movement_type)
    if date_from is not None:
        q = q.filter(InventoryMovement.created_at >= date_from)
    if date_to is not None:
        q = q.filter(InventoryMovement.created_at <= end_of_day(date_to))
    return q.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc()).all()


def create_movement(clinic_id: int, user, data: dict[str, Any]) -> InventoryMovement:
    """Registra a movimentação e ajusta o saldo na mesma transação.

    A saída usa UPDATE condicional (saldo >= quantidade) para que duas
    baixas concorrentes não deixem o estoque negativo.
    """
    item = db.session.get(InventoryItem, data["item_id"])
    if item is None or item.clinic_id != clinic_id:
        raise NotFoundError(NOT_FOUND)
    if not item.is_active:
        raise BusinessRuleError("Item de estoque está inativo")
    if data.get("appointment_id") is not None:
        get_or_404(Appointment, data["appointment_id"], clinic_id, "Agendamento não encontrado")

    quantity = data["quantity"]
    with transactional():
        q = InventoryItem.query.filter(InventoryItem.id == item.id)
        if data["type"] == MovementType.OUT:
            updated = q.filter(InventoryItem.current_quantity >= quantity).update(
                {InventoryItem.current_quantity: InventoryItem.current_quantity - quantity},
                synchronize_session=False,
            )
            if not updated:
                db.session.refresh(item)
                raise BusinessRuleError(
                    f"Quantidade insuficiente em estoque. Disponível: {item.current_quantity} {item.unit}"
                )
        else:
            q.update(
                {InventoryItem.current_quantity: InventoryItem.current_quantity + quantity},
                synchronize_session=False,
            )

        movement = InventoryMovement()
        movement.clinic_id = clinic_id
        movement.item_id = item.id
        movement.type = data["type"]
        movement.quantity = quantity
        movement.appointment_id = data.get("appointment_id")
        movement.notes = (data.get("notes") or "").strip() or None
        movement.created_by_id = user.id
        db.session.add(movement)
    db.session.refresh(item)
    logger.info("Movimentação %s de %s em item %s", movement.type, quantity, item.id)
    return movement
