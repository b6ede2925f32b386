"""Serviços de domínio para o módulo pacientes.

Mantém regras de negócio fora das rotas para facilitar testes.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from flask import current_app
from sqlalchemy import func, or_

from .. import db
from ..errors import BusinessRuleError, ValidationError
from ..utils_db import commit_with_retry, get_or_404
from .models import Patient


def normalizar_cpf(raw: str | None, *, validar: bool = True) -> str | None:
    """Normaliza CPF para XXX.XXX.XXX-YY e opcionalmente valida.

    Regras de validação:
    - 11 dígitos
    - Não pode ter todos dígitos iguais
    - Dígitos verificadores conforme algoritmo oficial
    Retorna None se entrada vazia. Se inválido e validar=True,
    levanta ValidationError.
    """
    if not raw or not raw.strip():
        return None
    digits = "".join(ch for ch in raw if ch.isdigit())
    if len(digits) != 11:
        if validar:
            raise ValidationError("CPF deve conter 11 dígitos")
        return raw.strip()
    if validar:
        if digits == digits[0] * 11:
            raise ValidationError("CPF inválido")
        for size in (9, 10):
            total = sum(int(digits[i]) * (size + 1 - i) for i in range(size))
            dv = (total * 10) % 11
            if dv == 10:
                dv = 0
            if dv != int(digits[size]):
                raise ValidationError("CPF inválido")
    return f"{digits[0:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:11]}"


def cpf_existe(clinic_id: int, cpf_normalizado: str, exclude_id: int | None = None) -> bool:
    """Retorna True se CPF já existir na clínica."""
    q = Patient.query.filter(Patient.clinic_id == clinic_id, Patient.cpf == cpf_normalizado)
    if exclude_id is not None:
        q = q.filter(Patient.id != exclude_id)
    return q.first() is not None


def list_patients(clinic_id: int, *, search: str | None = None, is_active: bool | None = None):
    q = Patient.query.filter(Patient.clinic_id == clinic_id)
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(
            or_(
                func.lower(Patient.name).like(like),
                func.lower(Patient.email).like(like),
                Patient.phone.like(f"%{search}%"),
                Patient.cpf.like(f"%{search}%"),
            )
        )
    if is_active is not None:
        q = q.filter(Patient.is_active.is_(is_active))
    return q.order_by(Patient.name.asc()).all()


def _apply_fields(patient: Patient, data: dict[str, Any]) -> None:
    if data.get("name"):
        patient.name = data["name"].strip()
    for field in ("email", "phone", "address", "notes"):
        if field in data:
            value = data[field]
            if isinstance(value, str):
                value = value.strip()
            setattr(patient, field, value or None)
    if "email" in data and patient.email:
        patient.email = patient.email.lower()
    if "cpf" in data:
        cpf = normalizar_cpf(data["cpf"], validar=current_app.config.get("VALIDATE_CPF", True))
        if cpf and cpf_existe(patient.clinic_id, cpf, exclude_id=patient.id):
            raise BusinessRuleError("CPF já cadastrado nesta clínica")
        patient.cpf = cpf
    if "birth_date" in data:
        birth = data["birth_date"]
        if birth is not None and birth > date.today():
            raise ValidationError("Data de nascimento não pode ser no futuro")
        patient.birth_date = birth
    if "is_active" in data:
        patient.is_active = bool(data["is_active"])


def create_patient(clinic_id: int, data: dict[str, Any]) -> Patient:
    patient = Patient()
    patient.clinic_id = clinic_id
    patient.is_active = True
    _apply_fields(patient, data)
    db.session.add(patient)
    commit_with_retry()
    return patient


def update_patient(patient: Patient, data: dict[str, Any]) -> Patient:
    _apply_fields(patient, data)
    commit_with_retry()
    return patient


def deactivate_patient(patient: Patient) -> Patient:
    patient.is_active = False
    commit_with_retry()
    return patient


def require_active_patient(clinic_id: int, patient_id: int) -> Patient:
    """Paciente da clínica e ativo (usado por agenda, atendimentos e orçamentos)."""
    patient = get_or_404(Patient, patient_id, clinic_id, "Paciente não encontrado")
    if not patient.is_active:
        raise BusinessRuleError("Paciente inativo")
    return patient
