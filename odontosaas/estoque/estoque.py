from flask import Blueprint

from ..auth.models import UserRole
from ..auth.permissions import (
    Permission,
    current_clinic_id,
    current_user,
    require_permission,
    require_roles,
)
from ..errors import ForbiddenError
from ..utils_api import arg_bool, arg_choice, arg_datetime, arg_int, arg_str, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import InventoryItemForm, InventoryItemUpdateForm, InventoryMovementForm
from .models import InventoryItem, MovementType

estoque_bp = Blueprint("estoque", __name__)

# Entrada é restrita à gestão; saída também pode ser lançada pela recepção
MOVEMENT_ROLES = {
    MovementType.IN: (UserRole.OWNER, UserRole.ADMIN),
    MovementType.OUT: (UserRole.OWNER, UserRole.ADMIN, UserRole.RECEPTIONIST),
}


# ===== Itens =====
@estoque_bp.route("/inventory-items", methods=["GET"])
@require_permission(Permission.INVENTORY_VIEW)
def list_items():
    items = services.list_items(
        current_clinic_id(),
        search=arg_str("search", max_length=100),
        is_active=arg_bool("isActive"),
        low_stock=arg_bool("lowStock"),
    )
    return ok([i.to_dict() for i in items])


@estoque_bp.route("/inventory-items", methods=["POST"])
@require_roles("gestao")
def create_item():
    form = validate_json(InventoryItemForm)
    item = services.create_item(current_clinic_id(), submitted(form))
    return ok(item.to_dict(), 201)


@estoque_bp.route("/inventory-items/<int:item_id>", methods=["GET"])
@require_permission(Permission.INVENTORY_VIEW)
def get_item(item_id: int):
    item = get_or_404(InventoryItem, item_id, current_clinic_id(), services.NOT_FOUND)
    return ok(item.to_dict())


@estoque_bp.route("/inventory-items/<int:item_id>", methods=["PATCH", "PUT"])
@require_roles("gestao")
def update_item(item_id: int):
    item = get_or_404(InventoryItem, item_id, current_clinic_id(), services.NOT_FOUND)
    form = validate_json(InventoryItemUpdateForm)
    services.update_item(item, submitted(form))
    return ok(item.to_dict())


@estoque_bp.route("/inventory-items/<int:item_id>", methods=["DELETE"])
@require_roles("gestao")
def delete_item(item_id: int):
    item = get_or_404(InventoryItem, item_id, current_clinic_id(), services.NOT_FOUND)
    services.deactivate_item(item)
    return ok(item.to_dict())


# ===== Movimentações =====
@estoque_bp.route("/inventory-movements", methods=["GET"])
@require_permission(Permission.INVENTORY_VIEW)
def list_movements():
    movements = services.list_movements(
        current_clinic_id(),
        item_id=arg_int("itemId"),
        movement_type=arg_choice("type", MovementType.ALL),
        date_from=arg_datetime("from"),
        date_to=arg_datetime("to"),
    )
    return ok([m.to_dict() for m in movements])


@estoque_bp.route("/inventory-movements", methods=["POST"])
@require_roles()
def create_movement():
    user = current_user()
    form = validate_json(InventoryMovementForm)
    data = submitted(form)
    if user.role not in MOVEMENT_ROLES[data["type"]]:
        if data["type"] == MovementType.IN:
            raise ForbiddenError("Apenas proprietários e administradores podem registrar entradas")
        raise ForbiddenError("Você não tem permissão para registrar saídas de estoque")
    movement = services.create_movement(user.clinic_id, user, data)
    return ok({"movement": movement.to_dict(), "item": movement.item.to_dict()}, 201)
