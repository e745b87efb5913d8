# gateway.py
# Acesso HTTP às coleções da API REST (clientes, pedidos, produtos, despesas, users)

from typing import Any, Dict, List, Optional

import httpx

from doceria.exceptions import MalformedResponse, RequestFailed
from doceria.logger import log_debug, log_error, log_warning
from doceria.models import Record


def _as_records(target: str, response: httpx.Response) -> List[Record]:
    try:
        body = response.json()
    except ValueError:
        raise MalformedResponse(target, "JSON inválido")
    if not isinstance(body, list):
        raise MalformedResponse(target, type(body).__name__)
    return [item for item in body if isinstance(item, dict)]


class RemoteDataGateway:
    """
    Cliente assíncrono da API REST do painel.

    Não faz novas tentativas: quem chama decide como se recuperar de um
    RequestFailed.
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        self.base_url = base_url.rstrip('/')
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "RemoteDataGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _url(self, *parts: Any) -> str:
        return self.base_url + '/' + '/'.join(str(p) for p in parts)

    async def _request(self, method: str, target: str, json: Any = None) -> httpx.Response:
        url = self._url(target)
        try:
            response = await self.client.request(method, url, json=json)
        except httpx.HTTPError as e:
            log_error(f"Erro de conexão em {method} {url}", e)
            raise RequestFailed(target, detail=str(e)) from e

        log_debug(f"{method} {url} -> {response.status_code}")
        if not response.is_success:
            log_error(f"API Error on {url}: {response.status_code} {response.reason_phrase} {response.text[:500]}")
            raise RequestFailed(target, response.status_code, response.reason_phrase)
        return response

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def fetch_collection(self, name: str) -> List[Record]:
        """GET /{name}. Corpo que não é lista vira lista vazia."""
        response = await self._request("GET", name)
        try:
            return _as_records(name, response)
        except MalformedResponse as e:
            log_warning(str(e))
            return []

    async def create_record(self, collection: str, payload: Record) -> Optional[Record]:
        response = await self._request("POST", collection, json=payload)
        return self._json_or_none(response)

    async def update_record(self, collection: str, record_id: Any, payload: Record) -> Optional[Record]:
        response = await self._request("PUT", f"{collection}/{record_id}", json=payload)
        return self._json_or_none(response)

    async def delete_record(self, collection: str, record_id: Any) -> None:
        await self._request("DELETE", f"{collection}/{record_id}")

    # Usuários (administração)

    async def list_users(self) -> List[Record]:
        return await self.fetch_collection("users")

    async def provision_user(self, payload: Dict[str, Any]) -> Optional[Record]:
        return await self.create_record("users", payload)

    async def set_user_role(self, user_id: Any, role: str) -> Optional[Record]:
        response = await self._request("PUT", f"users/{user_id}/role", json={"role": role})
        return self._json_or_none(response)

    async def set_user_password(self, user_id: Any, password: str) -> Optional[Record]:
        response = await self._request("PUT", f"users/{user_id}/password", json={"password": password})
        return self._json_or_none(response)

    async def remove_user(self, user_id: Any) -> None:
        await self.delete_record("users", user_id)
