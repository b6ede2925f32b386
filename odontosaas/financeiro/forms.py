from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional

from ..utils_api import ListField
from .models import PaymentMethod


class PaymentForm(FlaskForm):
    # Sem valor explícito, usa a soma dos orçamentos vinculados
    amount = DecimalField(
        "Valor",
        validators=[
            Optional(),
            NumberRange(min=0.01, max=999999.99, message="Valor deve ser positivo e no máximo R$ 999.999,99"),
        ],
    )
    method = StringField(
        "Forma de pagamento",
        validators=[
            DataRequired(message="Forma de pagamento é obrigatória"),
            AnyOf(PaymentMethod.ALL, message="Forma de pagamento deve ser CASH, PIX ou CARD"),
        ],
    )
    patient_id = IntegerField("Paciente", validators=[Optional()])
    description = TextAreaField(
        "Descrição",
        validators=[Optional(), Length(max=500, message="Descrição deve ter no máximo 500 caracteres")],
    )
    treatment_plan_ids = ListField("Orçamentos", coerce=int)
