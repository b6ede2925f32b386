from flask_wtf import FlaskForm
from wtforms import DecimalField, FieldList, Form, FormField, IntegerField, StringField, TextAreaField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    ValidationError,
)

from .models import TreatmentPlanStatus

MAX_ITEMS = 50


class TreatmentItemForm(Form):
    procedure_id = IntegerField("Procedimento", validators=[Optional()])
    description = StringField(
        "Descrição",
        filters=[lambda v: v.strip() if isinstance(v, str) else v],
        validators=[
            DataRequired(message="Descrição é obrigatória"),
            Length(min=3, max=200, message="Descrição deve ter entre 3 e 200 caracteres"),
        ],
    )
    tooth = StringField(
        "Dente", validators=[Optional(), Length(max=10, message="Dente deve ter no máximo 10 caracteres")]
    )
    value = DecimalField(
        "Valor",
        validators=[
            InputRequired(message="Valor é obrigatório"),
            NumberRange(min=0.01, max=999999.99, message="Valor deve ser positivo e no máximo R$ 999.999,99"),
        ],
    )
    quantity = IntegerField(
        "Quantidade",
        default=1,
        validators=[
            Optional(),
            NumberRange(min=1, max=999, message="Quantidade deve estar entre 1 e 999"),
        ],
    )


def _check_items(items) -> None:
    if len(items) < 1:
        raise ValidationError("Deve haver pelo menos um item no orçamento")
    if len(items) > MAX_ITEMS:
        raise ValidationError(f"Máximo de {MAX_ITEMS} itens por orçamento")


class TreatmentPlanForm(FlaskForm):
    patient_id = IntegerField("Paciente", validators=[InputRequired(message="Paciente é obrigatório")])
    dentist_id = IntegerField("Dentista", validators=[InputRequired(message="Dentista é obrigatório")])
    notes = TextAreaField(
        "Observações",
        validators=[Optional(), Length(max=2000, message="Observações devem ter no máximo 2000 caracteres")],
    )
    items = FieldList(FormField(TreatmentItemForm))

    def validate_items(self, field):
        _check_items(field.entries)


class TreatmentPlanUpdateForm(FlaskForm):
    status = StringField(
        "Status",
        validators=[
            Optional(),
            AnyOf(TreatmentPlanStatus.ALL, message="Status deve ser OPEN, APPROVED ou REJECTED"),
        ],
    )
    notes = TextAreaField(
        "Observações",
        validators=[Optional(), Length(max=2000, message="Observações devem ter no máximo 2000 caracteres")],
    )
    items = FieldList(FormField(TreatmentItemForm))

    def validate_items(self, field):
        if "items" in getattr(self, "submitted_keys", ()):
            _check_items(field.entries)
