# models.py
# Definições de dataclasses e modelos de domínio

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional

Record = Dict[str, Any]

# Coleções sincronizadas pelo painel, na ordem em que são buscadas
COLLECTIONS = ("clientes", "pedidos", "produtos", "despesas")

CENTS = Decimal("0.01")


class OrderStatus(str, Enum):
    PENDENTE = "Pendente"
    EM_PRODUCAO = "Em Produção"
    PRONTO_PARA_ENTREGA = "Pronto para Entrega"
    FINALIZADO = "Finalizado"
    CANCELADO = "Cancelado"


PENDING_STATUSES = frozenset({
    OrderStatus.PENDENTE.value,
    OrderStatus.EM_PRODUCAO.value,
    OrderStatus.PRONTO_PARA_ENTREGA.value,
})


class OrderOrigin(str, Enum):
    MANUAL = "Manual"
    CARDAPIO_ONLINE = "Cardapio Online"


class Role(str, Enum):
    ADMIN = "admin"
    ATENDENTE = "visitante"


DEFAULT_ROLE = Role.ATENDENTE


def to_money(value: Any) -> Decimal:
    """Converte para Decimal com duas casas; valores inválidos viram zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Interpreta o timestamp de criação de um registro.

    Aceita strings ISO-8601 (com ou sem 'Z'), datas 'YYYY-MM-DD' e epoch em
    milissegundos. Retorna None quando ausente ou ilegível.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class OrderItem:
    produto_id: Any
    quantidade: int
    preco_unitario: float

    @property
    def subtotal(self) -> Decimal:
        return to_money(Decimal(self.quantidade) * to_money(self.preco_unitario))

    def to_dict(self) -> Record:
        return {
            "produtoId": self.produto_id,
            "quantidade": self.quantidade,
            "precoUnitario": float(to_money(self.preco_unitario)),
        }

    @classmethod
    def from_dict(cls, data: Record) -> "OrderItem":
        return cls(
            produto_id=data.get("produtoId"),
            quantidade=int(data.get("quantidade") or 0),
            preco_unitario=float(to_money(data.get("precoUnitario"))),
        )


@dataclass
class Order:
    cliente_id: Any
    itens: List[OrderItem] = field(default_factory=list)
    status: str = OrderStatus.PENDENTE.value
    origem: str = OrderOrigin.MANUAL.value
    total: float = 0.0
    created_at: Optional[str] = None
    id: Any = None

    def to_payload(self) -> Record:
        payload: Record = {
            "clienteId": self.cliente_id,
            "itens": [item.to_dict() for item in self.itens],
            "total": self.total,
            "status": self.status,
            "origem": self.origem,
        }
        if self.created_at:
            payload["createdAt"] = self.created_at
        return payload

    @classmethod
    def from_record(cls, data: Record) -> "Order":
        return cls(
            id=data.get("id"),
            cliente_id=data.get("clienteId"),
            itens=[OrderItem.from_dict(i) for i in data.get("itens") or [] if isinstance(i, dict)],
            status=data.get("status") or OrderStatus.PENDENTE.value,
            origem=data.get("origem") or OrderOrigin.MANUAL.value,
            total=float(to_money(data.get("total"))),
            created_at=data.get("createdAt"),
        )


@dataclass
class Product:
    nome: str
    categoria: str = "Delivery"
    preco: float = 0.0
    custo: float = 0.0
    estoque: int = 0
    status: str = "Ativo"
    descricao: Optional[str] = None
    tempo_preparo: str = ""
    image_url: Optional[str] = None
    id: Any = None

    def to_payload(self) -> Record:
        return {
            "nome": self.nome,
            "categoria": self.categoria,
            "preco": self.preco,
            "custo": self.custo,
            "estoque": self.estoque,
            "status": self.status,
            "descricao": self.descricao or "",
            "tempoPreparo": self.tempo_preparo,
            "imageUrl": self.image_url or "",
        }


@dataclass
class Customer:
    nome: str
    email: Optional[str] = None
    telefone: Optional[str] = None
    endereco: Optional[str] = None
    aniversario: Optional[str] = None
    status: str = "Ativo"
    total_compras: float = 0.0
    ultima_compra: Optional[str] = None
    id: Any = None

    def to_payload(self) -> Record:
        return {
            "nome": self.nome,
            "email": self.email or "",
            "telefone": self.telefone or "",
            "endereco": self.endereco or "",
            "aniversario": self.aniversario or "",
            "status": self.status,
            "totalCompras": self.total_compras,
            "ultimaCompra": self.ultima_compra,
        }


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    id_token: str = ""
    refresh_token: str = ""


@dataclass(frozen=True)
class Session:
    identity: Identity
    role: Role
