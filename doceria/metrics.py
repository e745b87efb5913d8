# metrics.py
# Indicadores do dashboard calculados a partir do Snapshot

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from doceria.models import (
    OrderOrigin, OrderStatus, PENDING_STATUSES, Record, parse_timestamp, to_money,
)
from doceria.sync import Snapshot


@dataclass(frozen=True)
class DashboardMetrics:
    sales_today: float = 0.0
    count_sales_today: int = 0
    sales_this_week: float = 0.0
    count_sales_this_week: int = 0
    pending_crm_count: int = 0
    pending_online_count: int = 0
    active_customer_count: int = 0
    total_sales: float = 0.0
    pending_count: int = 0


def _local(ts: datetime, now: datetime) -> datetime:
    """Leva o timestamp para o mesmo referencial (com ou sem fuso) de `now`."""
    if now.tzinfo is None:
        if ts.tzinfo is None:
            return ts
        return ts.astimezone().replace(tzinfo=None)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=now.tzinfo)
    return ts.astimezone(now.tzinfo)


def week_start(now: datetime) -> datetime:
    """Domingo mais recente às 00:00 (o próprio dia, se hoje for domingo)."""
    days_since_sunday = (now.weekday() + 1) % 7
    return (now - timedelta(days=days_since_sunday)).replace(hour=0, minute=0, second=0, microsecond=0)


def _created_at(order: Record, now: datetime) -> Optional[datetime]:
    ts = parse_timestamp(order.get("createdAt"))
    return _local(ts, now) if ts is not None else None


def _sum(orders: Iterable[Record]) -> Decimal:
    return sum((to_money(o.get("total")) for o in orders), Decimal("0.00"))


def compute_metrics(snapshot: Snapshot, now: Optional[datetime] = None) -> DashboardMetrics:
    """
    Calcula os indicadores do dashboard.

    Pedidos sem `createdAt` legível ficam fora das janelas de hoje e da
    semana, mas continuam nas contagens sem janela de tempo.
    """
    now = now or datetime.now()
    orders = snapshot.pedidos
    start_of_week = week_start(now)
    today = now.date()

    finished_today = []
    finished_week = []
    for order in orders:
        if order.get("status") != OrderStatus.FINALIZADO.value:
            continue
        created = _created_at(order, now)
        if created is None:
            continue
        if created.date() == today:
            finished_today.append(order)
        if start_of_week <= created <= now:
            finished_week.append(order)

    pending = [o for o in orders if o.get("status") in PENDING_STATUSES]
    online = [o for o in pending if o.get("origem") == OrderOrigin.CARDAPIO_ONLINE.value]

    return DashboardMetrics(
        sales_today=float(_sum(finished_today)),
        count_sales_today=len(finished_today),
        sales_this_week=float(_sum(finished_week)),
        count_sales_this_week=len(finished_week),
        pending_crm_count=len(pending) - len(online),
        pending_online_count=len(online),
        active_customer_count=len(snapshot.clientes),
        total_sales=float(_sum(orders)),
        pending_count=snapshot.pending_count(),
    )


def format_price_br(value: float) -> str:
    """Formata valor em reais no padrão brasileiro (R$ 1.234,56)"""
    return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
