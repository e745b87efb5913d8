# services.py
# Camada de serviços para regras de negócio

import asyncio
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

import httpx

from doceria.exceptions import AuthError, StorageError
from doceria.firebase import StorageReference
from doceria.logger import log_error, log_event, log_warning
from doceria.models import (
    DEFAULT_ROLE, Customer, Identity, Order, OrderItem, OrderStatus, Product, Record, Role, Session,
)
from doceria.sync import PollingSynchronizer


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def register(self, email: str, password: str) -> Identity: ...

    async def sign_out(self) -> None: ...


class ProfileStore(Protocol):
    async def get_role(self, identity: Identity) -> Optional[str]: ...

    async def create_profile(self, identity: Identity, role: str) -> None: ...


class ObjectStorage(Protocol):
    async def upload(self, path: str, data: bytes, id_token: str = "") -> StorageReference: ...

    def get_public_url(self, reference: StorageReference) -> str: ...


AuthListener = Callable[[Optional[Session]], Any]

LOGIN_TIMEOUT_SECONDS = 30.0
TIMEOUT_MESSAGE = "Tempo esgotado ao contatar o servidor. Tente novamente."


class AuthService:
    """Sessão atual: identidade do provedor + papel lido do perfil."""

    def __init__(self, provider: IdentityProvider, profiles: ProfileStore):
        self.provider = provider
        self.profiles = profiles
        self.session: Optional[Session] = None
        self._listeners: List[AuthListener] = []

    @property
    def role(self) -> Optional[Role]:
        return self.session.role if self.session else None

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Registra o ouvinte e já entrega o estado atual."""
        self._listeners.append(callback)
        callback(self.session)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def _set_session(self, session: Optional[Session]) -> None:
        self.session = session
        for callback in list(self._listeners):
            callback(session)

    async def _resolve_role(self, identity: Identity) -> Role:
        try:
            raw = await self.profiles.get_role(identity)
        except httpx.HTTPError as e:
            log_warning(f"Perfil de {identity.email} indisponível, usando papel padrão: {e}")
            return DEFAULT_ROLE
        try:
            return Role(raw) if raw else DEFAULT_ROLE
        except ValueError:
            log_warning(f"Papel desconhecido '{raw}' para {identity.email}, usando papel padrão")
            return DEFAULT_ROLE

    async def sign_in(self, email: str, password: str) -> Session:
        identity = await self.provider.sign_in(email.strip(), password)
        session = Session(identity, await self._resolve_role(identity))
        log_event(f"Login: {identity.email} ({session.role.value})")
        self._set_session(session)
        return session

    async def register(self, email: str, password: str) -> Session:
        identity = await self.provider.register(email.strip(), password)
        try:
            await self.profiles.create_profile(identity, DEFAULT_ROLE.value)
        except httpx.HTTPError as e:
            log_warning(f"Não foi possível criar o perfil de {identity.email}: {e}")
        session = Session(identity, DEFAULT_ROLE)
        self._set_session(session)
        return session

    async def sign_out(self) -> None:
        if self.session is None:
            return
        email = self.session.identity.email
        await self.provider.sign_out()
        log_event(f"Logout: {email}")
        self._set_session(None)

    async def attempt(
        self,
        email: str,
        password: str,
        registering: bool = False,
        timeout: float = LOGIN_TIMEOUT_SECONDS,
    ) -> Optional[str]:
        """
        Login ou registro para a tela de login.

        Returns:
            Optional[str]: None em caso de sucesso, senão a mensagem para o usuário
        """
        action = self.register if registering else self.sign_in
        try:
            await asyncio.wait_for(action(email, password), timeout)
        except AuthError as e:
            return str(e)
        except asyncio.TimeoutError:
            log_warning(f"Tempo esgotado na autenticação de {email}")
            return TIMEOUT_MESSAGE
        except Exception as e:
            log_error("Erro inesperado na autenticação", e)
            return AuthError.user_message
        return None


def order_total(items: Iterable[OrderItem]) -> float:
    """Soma quantidade x preço unitário dos itens, com duas casas."""
    return float(sum((item.subtotal for item in items), Decimal("0.00")))


class OrderService:
    """Editor de pedidos: o total é sempre recalculado a partir dos itens."""

    def __init__(self, sync: PollingSynchronizer, clock: Callable[[], datetime] = datetime.now):
        self.sync = sync
        self.clock = clock

    @staticmethod
    def _validate(order: Order) -> None:
        if not order.itens:
            raise ValueError("O pedido precisa de pelo menos um item.")
        if order.status not in {s.value for s in OrderStatus}:
            raise ValueError(f"Status de pedido inválido: {order.status}")
        for item in order.itens:
            if item.quantidade <= 0:
                raise ValueError("Quantidade deve ser maior que zero.")
            if item.preco_unitario < 0:
                raise ValueError("Preço unitário não pode ser negativo.")

    async def save(self, order: Order) -> Optional[Record]:
        self._validate(order)
        order.total = order_total(order.itens)
        if order.id is None:
            if not order.created_at:
                order.created_at = self.clock().isoformat(timespec='seconds')
            return await self.sync.create_item("pedidos", order.to_payload())
        return await self.sync.update_item("pedidos", order.id, order.to_payload())

    async def set_status(self, record: Record, status: str) -> Optional[Record]:
        """
        Troca só o status, preservando os demais campos do registro.

        Pedidos com itens têm o total recalculado; pedidos sem itens (ex.:
        vindos do cardápio online) mantêm o total recebido.
        """
        if status not in {s.value for s in OrderStatus}:
            raise ValueError(f"Status de pedido inválido: {status}")
        payload = {key: value for key, value in record.items() if key != "id"}
        payload["status"] = status
        items = Order.from_record(record).itens
        if items:
            payload["total"] = order_total(items)
        return await self.sync.update_item("pedidos", record["id"], payload)

    async def delete(self, order_id: Any) -> None:
        await self.sync.delete_item("pedidos", order_id)


class ProductService:
    def __init__(
        self,
        sync: PollingSynchronizer,
        storage: Optional[ObjectStorage] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.sync = sync
        self.storage = storage
        self.clock = clock

    @staticmethod
    def from_form(form: Dict[str, Any]) -> Product:
        """Converte os campos do formulário (texto) para os tipos do produto."""
        nome = str(form.get("nome") or "").strip()
        if not nome:
            raise ValueError("Nome do produto é obrigatório.")
        try:
            preco = float(form.get("preco") or 0)
            custo = float(form.get("custo") or 0)
            estoque = int(form.get("estoque") or 0)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Valor numérico inválido: {e}") from e
        if preco < 0 or custo < 0 or estoque < 0:
            raise ValueError("Preço, custo e estoque não podem ser negativos.")
        return Product(
            id=form.get("id"),
            nome=nome,
            categoria=form.get("categoria") or "Delivery",
            preco=preco,
            custo=custo,
            estoque=estoque,
            status=form.get("status") or "Ativo",
            descricao=form.get("descricao") or None,
            tempo_preparo=form.get("tempoPreparo") or "",
            image_url=form.get("imageUrl") or None,
        )

    async def upload_image(self, filename: str, data: bytes, id_token: str = "") -> str:
        if self.storage is None:
            raise StorageError("Armazenamento de imagens não configurado")
        path = f"products/{int(self.clock() * 1000)}_{filename}"
        reference = await self.storage.upload(path, data, id_token=id_token)
        return self.storage.get_public_url(reference)

    async def save(
        self,
        form: Dict[str, Any],
        image: Optional[bytes] = None,
        filename: str = "",
        id_token: str = "",
    ) -> Optional[Record]:
        product = self.from_form(form)
        if image:
            product.image_url = await self.upload_image(filename or "imagem", image, id_token)
        if product.id is None:
            return await self.sync.create_item("produtos", product.to_payload())
        return await self.sync.update_item("produtos", product.id, product.to_payload())

    async def delete(self, product_id: Any) -> None:
        await self.sync.delete_item("produtos", product_id)


class CustomerService:
    def __init__(self, sync: PollingSynchronizer, today: Callable[[], date] = date.today):
        self.sync = sync
        self.today = today

    async def save(self, form: Dict[str, Any]) -> Optional[Record]:
        nome = str(form.get("nome") or "").strip()
        if not nome:
            raise ValueError("Nome do cliente é obrigatório.")
        customer = Customer(
            id=form.get("id"),
            nome=nome,
            email=form.get("email"),
            telefone=form.get("telefone"),
            endereco=form.get("endereco"),
            aniversario=form.get("aniversario") or None,
            status=form.get("status") or "Ativo",
            total_compras=float(form.get("totalCompras") or 0),
            ultima_compra=form.get("ultimaCompra"),
        )
        if customer.id is None:
            # Cliente novo começa sem compras
            customer.total_compras = 0.0
            customer.ultima_compra = self.today().isoformat()
            return await self.sync.create_item("clientes", customer.to_payload())
        return await self.sync.update_item("clientes", customer.id, customer.to_payload())

    async def delete(self, customer_id: Any) -> None:
        await self.sync.delete_item("clientes", customer_id)
