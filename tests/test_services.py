# tests/test_services.py
import asyncio
import json
from datetime import date, datetime

import httpx
import pytest

from doceria.copywriter import Copywriter, GeminiClient
from doceria.exceptions import AuthError, EmailInUse, GenerationFailed, InvalidCredentials, StorageError
from doceria.firebase import FirebaseIdentityProvider, FirebaseStorage, FirestoreProfileStore
from doceria.models import Identity, Order, OrderItem, Role
from doceria.services import (
    TIMEOUT_MESSAGE, AuthService, CustomerService, OrderService, ProductService, order_total,
)


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def identity_error(code):
    return lambda request: httpx.Response(400, json={"error": {"code": 400, "message": code}})


class FakeSync:
    def __init__(self):
        self.calls = []

    async def create_item(self, collection, payload):
        self.calls.append(("create", collection, None, payload))
        return {"id": "1", **payload}

    async def update_item(self, collection, record_id, payload):
        self.calls.append(("update", collection, record_id, payload))
        return {"id": record_id, **payload}

    async def delete_item(self, collection, record_id):
        self.calls.append(("delete", collection, record_id, None))


class FakeProvider:
    async def sign_in(self, email, password):
        if password != "segredo":
            raise InvalidCredentials("INVALID_LOGIN_CREDENTIALS")
        return Identity(uid="u1", email=email, id_token="tok")

    async def register(self, email, password):
        return Identity(uid="u2", email=email, id_token="tok")

    async def sign_out(self):
        return None


class FakeProfiles:
    def __init__(self, role=None, error=None):
        self.role = role
        self.error = error
        self.created = []

    async def get_role(self, identity):
        if self.error:
            raise self.error
        return self.role

    async def create_profile(self, identity, role):
        self.created.append((identity.uid, role))


# Firebase


@pytest.mark.asyncio
async def test_sign_in_success():
    def handler(request):
        assert request.url.params["key"] == "chave"
        assert json.loads(request.content)["returnSecureToken"] is True
        return httpx.Response(200, json={"localId": "u1", "email": "ana@doce.com", "idToken": "tok"})

    async with mock_client(handler) as client:
        identity = await FirebaseIdentityProvider("chave", client).sign_in("ana@doce.com", "x")
    assert identity == Identity(uid="u1", email="ana@doce.com", id_token="tok")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["INVALID_LOGIN_CREDENTIALS", "EMAIL_NOT_FOUND", "INVALID_PASSWORD"])
async def test_sign_in_credential_errors_share_one_message(code):
    async with mock_client(identity_error(code)) as client:
        with pytest.raises(InvalidCredentials) as info:
            await FirebaseIdentityProvider("chave", client).sign_in("ana@doce.com", "x")
    assert str(info.value) == "Email ou senha inválidos."


@pytest.mark.asyncio
async def test_sign_in_other_failure_uses_generic_message():
    async with mock_client(identity_error("TOO_MANY_ATTEMPTS_TRY_LATER : tente depois")) as client:
        with pytest.raises(AuthError) as info:
            await FirebaseIdentityProvider("chave", client).sign_in("ana@doce.com", "x")
    assert not isinstance(info.value, InvalidCredentials)
    assert info.value.code == "TOO_MANY_ATTEMPTS_TRY_LATER"
    assert str(info.value) == "Email ou senha inválidos."


@pytest.mark.asyncio
async def test_register_errors():
    async with mock_client(identity_error("EMAIL_EXISTS")) as client:
        with pytest.raises(EmailInUse) as info:
            await FirebaseIdentityProvider("chave", client).register("ana@doce.com", "x")
    assert str(info.value) == "Este email já está em uso."

    async with mock_client(identity_error("WEAK_PASSWORD : curta")) as client:
        with pytest.raises(AuthError) as info:
            await FirebaseIdentityProvider("chave", client).register("ana@doce.com", "x")
    assert str(info.value) == "Erro ao registrar. Tente novamente."


@pytest.mark.asyncio
async def test_profile_store_reads_role():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer tok"
        if request.url.path.endswith("/users/u1"):
            return httpx.Response(200, json={"fields": {"role": {"stringValue": "admin"}}})
        return httpx.Response(404, json={"error": {"code": 404}})

    async with mock_client(handler) as client:
        store = FirestoreProfileStore("doceria", client)
        assert await store.get_role(Identity("u1", "a@b.com", "tok")) == "admin"
        assert await store.get_role(Identity("u9", "c@d.com", "tok")) is None


@pytest.mark.asyncio
async def test_storage_upload_and_public_url():
    def handler(request):
        assert request.url.params["name"] == "products/1_bolo.png"
        assert request.headers["Content-Type"] == "image/png"
        assert request.content == b"png"
        return httpx.Response(200, json={"name": "products/1_bolo.png", "bucket": "b", "downloadTokens": "t1"})

    async with mock_client(handler) as client:
        storage = FirebaseStorage("b", client)
        ref = await storage.upload("products/1_bolo.png", b"png")
    assert storage.get_public_url(ref) == (
        "https://firebasestorage.googleapis.com/v0/b/b/o/products%2F1_bolo.png?alt=media&token=t1"
    )


# AuthService


@pytest.mark.asyncio
async def test_auth_service_session_lifecycle():
    auth = AuthService(FakeProvider(), FakeProfiles(role="admin"))
    seen = []
    auth.on_auth_state_change(seen.append)
    assert seen == [None]

    session = await auth.sign_in(" ana@doce.com ", "segredo")
    assert session.role is Role.ADMIN
    assert session.identity.email == "ana@doce.com"
    assert auth.role is Role.ADMIN

    await auth.sign_out()
    assert auth.session is None
    assert seen == [None, session, None]


@pytest.mark.asyncio
@pytest.mark.parametrize("profiles", [
    FakeProfiles(role=None),
    FakeProfiles(role="gerente"),
    FakeProfiles(error=httpx.ConnectError("offline")),
])
async def test_role_defaults_to_atendente(profiles):
    auth = AuthService(FakeProvider(), profiles)
    session = await auth.sign_in("ana@doce.com", "segredo")
    assert session.role is Role.ATENDENTE


@pytest.mark.asyncio
async def test_failed_sign_in_keeps_no_session():
    auth = AuthService(FakeProvider(), FakeProfiles(role="admin"))
    with pytest.raises(InvalidCredentials):
        await auth.sign_in("ana@doce.com", "errada")
    assert auth.session is None


@pytest.mark.asyncio
async def test_register_creates_atendente_profile():
    profiles = FakeProfiles()
    auth = AuthService(FakeProvider(), profiles)
    session = await auth.register("bia@doce.com", "segredo")
    assert session.role is Role.ATENDENTE
    assert profiles.created == [("u2", "visitante")]


class SlowProvider(FakeProvider):
    async def sign_in(self, email, password):
        await asyncio.sleep(1)
        return await super().sign_in(email, password)


class BrokenProvider(FakeProvider):
    async def sign_in(self, email, password):
        raise RuntimeError("resposta inesperada")


@pytest.mark.asyncio
async def test_attempt_returns_none_and_opens_session():
    seen = []
    auth = AuthService(FakeProvider(), FakeProfiles(role="admin"))
    auth.on_auth_state_change(seen.append)

    assert await auth.attempt("ana@doce.com", "segredo") is None
    assert auth.role is Role.ADMIN
    assert seen[-1] is auth.session


@pytest.mark.asyncio
async def test_attempt_returns_user_message_on_failure():
    auth = AuthService(FakeProvider(), FakeProfiles(role="admin"))
    assert await auth.attempt("ana@doce.com", "errada") == "Email ou senha inválidos."
    assert auth.session is None

    auth = AuthService(BrokenProvider(), FakeProfiles())
    assert await auth.attempt("ana@doce.com", "segredo") == AuthError.user_message
    assert auth.session is None


@pytest.mark.asyncio
async def test_attempt_times_out():
    auth = AuthService(SlowProvider(), FakeProfiles(role="admin"))
    assert await auth.attempt("ana@doce.com", "segredo", timeout=0.01) == TIMEOUT_MESSAGE
    assert auth.session is None


@pytest.mark.asyncio
async def test_attempt_registering_creates_profile():
    profiles = FakeProfiles()
    auth = AuthService(FakeProvider(), profiles)
    assert await auth.attempt("bia@doce.com", "qualquer", registering=True) is None
    assert auth.role is Role.ATENDENTE
    assert profiles.created == [("u2", "visitante")]


# Pedidos, produtos e clientes


def test_order_total():
    items = [OrderItem("p1", 2, 12.5), OrderItem("p2", 3, 0.1)]
    assert order_total(items) == 25.3
    assert order_total([]) == 0.0


@pytest.mark.asyncio
async def test_order_save_recomputes_stale_total():
    sync = FakeSync()
    service = OrderService(sync, clock=lambda: datetime(2024, 5, 15, 10, 30))
    order = Order(cliente_id="c1", itens=[OrderItem("p1", 2, 15.0)], total=999.0)

    await service.save(order)

    action, collection, _, payload = sync.calls[0]
    assert (action, collection) == ("create", "pedidos")
    assert payload["total"] == 30.0
    assert payload["createdAt"] == "2024-05-15T10:30:00"


@pytest.mark.asyncio
async def test_order_set_status_updates_existing():
    sync = FakeSync()
    record = {"id": "7", "clienteId": "c1", "status": "Pendente", "total": 1.0,
              "itens": [{"produtoId": "p1", "quantidade": 1, "precoUnitario": 20.0}],
              "createdAt": "2024-05-01T08:00:00"}

    await OrderService(sync).set_status(record, "Finalizado")

    action, collection, record_id, payload = sync.calls[0]
    assert (action, collection, record_id) == ("update", "pedidos", "7")
    assert payload["status"] == "Finalizado"
    assert payload["total"] == 20.0
    assert payload["createdAt"] == "2024-05-01T08:00:00"


@pytest.mark.asyncio
async def test_set_status_keeps_orders_without_items():
    sync = FakeSync()
    record = {"id": "9", "clienteId": "c1", "status": "Pendente", "origem": "Online",
              "itens": [], "total": 58.9, "observacoes": "Sem lactose", "createdAt": "2024-05-02T09:00:00"}

    await OrderService(sync).set_status(record, "Em Produção")

    action, collection, record_id, payload = sync.calls[0]
    assert (action, collection, record_id) == ("update", "pedidos", "9")
    assert payload == {"clienteId": "c1", "status": "Em Produção", "origem": "Online", "itens": [],
                       "total": 58.9, "observacoes": "Sem lactose", "createdAt": "2024-05-02T09:00:00"}
    assert record["status"] == "Pendente"


@pytest.mark.asyncio
async def test_set_status_rejects_unknown_status():
    sync = FakeSync()
    with pytest.raises(ValueError):
        await OrderService(sync).set_status({"id": "9", "status": "Pendente", "itens": []}, "Perdido")
    assert sync.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("order", [
    Order(cliente_id="c1", itens=[]),
    Order(cliente_id="c1", itens=[OrderItem("p1", 0, 10.0)]),
    Order(cliente_id="c1", itens=[OrderItem("p1", 1, -1.0)]),
    Order(cliente_id="c1", itens=[OrderItem("p1", 1, 1.0)], status="Perdido"),
])
async def test_invalid_orders_are_rejected(order):
    sync = FakeSync()
    with pytest.raises(ValueError):
        await OrderService(sync).save(order)
    assert sync.calls == []


def test_product_from_form():
    product = ProductService.from_form({"nome": " Bolo ", "preco": "45.5", "custo": "20", "estoque": "3"})
    assert (product.nome, product.preco, product.custo, product.estoque) == ("Bolo", 45.5, 20.0, 3)
    assert product.categoria == "Delivery"

    with pytest.raises(ValueError):
        ProductService.from_form({"nome": "Bolo", "preco": "-1"})
    with pytest.raises(ValueError):
        ProductService.from_form({"nome": "Bolo", "estoque": "muitos"})
    with pytest.raises(ValueError):
        ProductService.from_form({"preco": "10"})


@pytest.mark.asyncio
async def test_product_save_uploads_image():
    uploaded = []

    def handler(request):
        uploaded.append(request.url.params["name"])
        return httpx.Response(200, json={"name": request.url.params["name"], "downloadTokens": "t"})

    sync = FakeSync()
    async with mock_client(handler) as client:
        service = ProductService(sync, FirebaseStorage("b", client), clock=lambda: 1700000000.0)
        await service.save({"nome": "Torta", "preco": "30"}, image=b"jpg", filename="torta.jpg")

    assert uploaded == ["products/1700000000000_torta.jpg"]
    payload = sync.calls[0][3]
    assert payload["imageUrl"].startswith("https://firebasestorage.googleapis.com/v0/b/b/o/products%2F1700000000000_torta.jpg")


@pytest.mark.asyncio
async def test_product_image_without_storage():
    with pytest.raises(StorageError):
        await ProductService(FakeSync()).upload_image("a.png", b"x")


@pytest.mark.asyncio
async def test_new_customer_defaults():
    sync = FakeSync()
    service = CustomerService(sync, today=lambda: date(2024, 5, 15))
    await service.save({"nome": "Carla", "totalCompras": "500"})

    payload = sync.calls[0][3]
    assert payload["totalCompras"] == 0.0
    assert payload["ultimaCompra"] == "2024-05-15"
    assert payload["status"] == "Ativo"

    with pytest.raises(ValueError):
        await service.save({"nome": "  "})


@pytest.mark.asyncio
async def test_deletes_go_through_sync():
    sync = FakeSync()
    await OrderService(sync).delete("7")
    await ProductService(sync).delete("p1")
    await CustomerService(sync).delete("c1")
    assert sync.calls == [
        ("delete", "pedidos", "7", None),
        ("delete", "produtos", "p1", None),
        ("delete", "clientes", "c1", None),
    ]


# Copywriter


@pytest.mark.asyncio
async def test_birthday_message_prompt():
    prompts = []

    def handler(request):
        body = json.loads(request.content)
        prompts.append(body["contents"][0]["parts"][0]["text"])
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": " Parabéns! "}]}}]})

    async with mock_client(handler) as client:
        writer = Copywriter(GeminiClient("chave", client=client))
        text = await writer.birthday_message({"nome": "Ana", "status": "VIP"})

    assert text == "Parabéns!"
    assert "Ana" in prompts[0] and "VIP" in prompts[0]


@pytest.mark.asyncio
async def test_generation_failures():
    async with mock_client(lambda request: httpx.Response(200, json={"candidates": []})) as client:
        with pytest.raises(GenerationFailed):
            await GeminiClient("chave", client=client).generate("oi")

    async with mock_client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(GenerationFailed):
            await GeminiClient("chave", client=client).generate("oi")

    with pytest.raises(GenerationFailed):
        await GeminiClient("").generate("oi")


@pytest.mark.asyncio
async def test_product_description_requires_name_and_category():
    writer = Copywriter(GeminiClient("chave"))
    with pytest.raises(ValueError):
        await writer.product_description("Bolo", "")
