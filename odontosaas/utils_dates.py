"""Helpers de data/hora.

Todas as datas persistidas são UTC "naive" (sem tzinfo), como o SQLite
armazena. Entradas ISO com fuso são convertidas para UTC antes de perder
o tzinfo.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value) -> datetime:
    """Converte string ISO (ou datetime) em datetime UTC naive.

    Levanta ValueError para entradas inválidas.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        text = str(value or "").strip()
        if not text:
            raise ValueError("data vazia")
        try:
            dt = date_parser.isoparse(text)
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"data inválida: {text}") from exc
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_datetime(value).date()


def start_of_day(value: date | datetime) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def end_of_day(value: date | datetime) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.max)


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """Intervalo [início, fim] do mês (fim = último microssegundo)."""
    start = datetime(year, month, 1)
    end = start + relativedelta(months=1) - timedelta(microseconds=1)
    return start, end


def current_month_range(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or utcnow()
    return month_range(now.year, now.month)


def shift_month(value: datetime, months: int) -> datetime:
    return value + relativedelta(months=months)


def last_months(count: int, now: datetime | None = None) -> list[tuple[datetime, datetime]]:
    """Últimos ``count`` meses (incluindo o atual), do mais antigo ao atual."""
    now = now or utcnow()
    first = datetime(now.year, now.month, 1)
    ranges = []
    for i in range(count - 1, -1, -1):
        start = first - relativedelta(months=i)
        ranges.append(month_range(start.year, start.month))
    return ranges


def format_br(value: datetime | date) -> str:
    return value.strftime("%d/%m/%Y")


def isoformat(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None
