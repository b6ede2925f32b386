"""Serviços dos catálogos (especialidades, procedimentos e CIDs)."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from sqlalchemy import func, or_

from .. import db
from ..errors import ValidationError
from ..utils_api import to_money
from ..utils_db import commit_with_retry, get_or_404
from .models import Cid, Procedure, Specialty

logger = logging.getLogger("odontosaas.catalogo")

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def list_specialties() -> list[Specialty]:
    return Specialty.query.order_by(Specialty.name.asc()).all()


def create_specialty(*, name: str, description: str | None = None) -> Specialty:
    name = name.strip()
    exists = Specialty.query.filter(func.lower(Specialty.name) == name.lower()).first()
    if exists:
        raise ValidationError("Especialidade já cadastrada")
    spec = Specialty()
    spec.name = name
    spec.description = (description or "").strip() or None
    db.session.add(spec)
    commit_with_retry()
    return spec


def list_procedures(
    clinic_id: int,
    *,
    search: str | None = None,
    specialty_id: int | None = None,
    is_active: bool | None = None,
) -> list[Procedure]:
    q = Procedure.query.filter(Procedure.clinic_id == clinic_id)
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(
            or_(func.lower(Procedure.name).like(like), func.lower(Procedure.description).like(like))
        )
    if specialty_id is not None:
        q = q.filter(Procedure.specialty_id == specialty_id)
    if is_active is not None:
        q = q.filter(Procedure.is_active.is_(is_active))
    return q.order_by(Procedure.name.asc()).all()


def _apply_procedure_fields(proc: Procedure, data: dict[str, Any]) -> None:
    if "specialty_id" in data:
        specialty_id = data["specialty_id"]
        if specialty_id is not None:
            get_or_404(Specialty, specialty_id, message="Especialidade não encontrada")
        proc.specialty_id = specialty_id
    if data.get("name") is not None:
        proc.name = data["name"].strip()
    if "description" in data:
        proc.description = (data["description"] or "").strip() or None
    if data.get("base_value") is not None:
        proc.base_value = to_money(data["base_value"])
    if data.get("commission_percentage") is not None:
        proc.commission_percentage = to_money(data["commission_percentage"])
    if "is_active" in data:
        proc.is_active = bool(data["is_active"])


def create_procedure(clinic_id: int, data: dict[str, Any]) -> Procedure:
    proc = Procedure()
    proc.clinic_id = clinic_id
    proc.is_active = True
    proc.commission_percentage = 0
    _apply_procedure_fields(proc, data)
    db.session.add(proc)
    commit_with_retry()
    return proc


def update_procedure(proc: Procedure, data: dict[str, Any]) -> Procedure:
    _apply_procedure_fields(proc, data)
    commit_with_retry()
    return proc


def deactivate_procedure(proc: Procedure) -> Procedure:
    proc.is_active = False
    commit_with_retry()
    return proc


def search_cids(query: str | None = None, limit: int = 50) -> list[Cid]:
    q = Cid.query
    if query and query.strip():
        like = f"%{query.strip().lower()}%"
        q = q.filter(
            or_(
                func.lower(Cid.code).like(like),
                func.lower(Cid.description).like(like),
                func.lower(Cid.category).like(like),
            )
        )
        return q.order_by(Cid.code.asc()).limit(limit).all()
    return q.order_by(Cid.code.asc()).all()


def _load_seed(filename: str) -> list[dict[str, Any]]:
    with open(os.path.join(DATA_DIR, filename), "r", encoding="utf-8") as fh:
        return json.load(fh)


def seed_catalog() -> dict[str, int]:
    """Insere CIDs e especialidades padrão que ainda não existem.

    Idempotente: registros já cadastrados (por código ou nome) são mantidos.
    """
    known_codes = {code for (code,) in db.session.query(Cid.code).all()}
    cids = 0
    for entry in _load_seed("cids.json"):
        if entry["code"] in known_codes:
            continue
        cid = Cid()
        cid.code = entry["code"]
        cid.description = entry["description"]
        cid.category = entry.get("category")
        db.session.add(cid)
        known_codes.add(cid.code)
        cids += 1

    known_names = {name.lower() for (name,) in db.session.query(Specialty.name).all()}
    specialties = 0
    for entry in _load_seed("specialties.json"):
        if entry["name"].lower() in known_names:
            continue
        spec = Specialty()
        spec.name = entry["name"]
        spec.description = entry.get("description")
        db.session.add(spec)
        known_names.add(spec.name.lower())
        specialties += 1

    commit_with_retry()
    logger.info("Catálogo semeado: %s CIDs, %s especialidades", cids, specialties)
    return {"cids": cids, "specialties": specialties}
