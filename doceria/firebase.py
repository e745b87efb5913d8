# firebase.py
# Adaptadores REST do Firebase: autenticação, perfis (Firestore) e Storage

import mimetypes
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from doceria.exceptions import AuthError, EmailInUse, InvalidCredentials, StorageError
from doceria.logger import log_error, log_event, log_warning
from doceria.models import Identity

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{action}"
FIRESTORE_URL = "https://firestore.googleapis.com/v1/projects/{project}/databases/(default)/documents"
STORAGE_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o"

# Códigos do Identity Toolkit que significam email/senha incorretos
INVALID_CREDENTIAL_CODES = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "MISSING_PASSWORD",
    "USER_DISABLED",
}


def _error_code(response: httpx.Response) -> str:
    """Extrai o código de erro ("EMAIL_EXISTS : detalhe" -> "EMAIL_EXISTS")."""
    try:
        message = response.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        return ""
    return str(message).split(":")[0].strip()


class _RestAdapter:
    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class FirebaseIdentityProvider(_RestAdapter):
    """Email/senha via API REST do Identity Toolkit."""

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        super().__init__(client, timeout)
        self.api_key = api_key

    async def _accounts(self, action: str, email: str, password: str) -> httpx.Response:
        url = IDENTITY_URL.format(action=action)
        payload = {"email": email, "password": password, "returnSecureToken": True}
        return await self.client.post(url, params={"key": self.api_key}, json=payload)

    @staticmethod
    def _identity(data: Dict[str, Any], email: str) -> Identity:
        return Identity(
            uid=data["localId"],
            email=data.get("email") or email,
            id_token=data.get("idToken", ""),
            refresh_token=data.get("refreshToken", ""),
        )

    async def sign_in(self, email: str, password: str) -> Identity:
        try:
            response = await self._accounts("signInWithPassword", email, password)
        except httpx.HTTPError as e:
            log_error("Erro de conexão no login", e)
            raise AuthError("network", InvalidCredentials.user_message) from e
        if response.is_success:
            return self._identity(response.json(), email)

        code = _error_code(response)
        log_warning(f"Erro de login: {code or response.status_code}")
        if code in INVALID_CREDENTIAL_CODES:
            raise InvalidCredentials(code)
        # Demais falhas também usam a mensagem genérica do login
        raise AuthError(code, InvalidCredentials.user_message)

    async def register(self, email: str, password: str) -> Identity:
        try:
            response = await self._accounts("signUp", email, password)
        except httpx.HTTPError as e:
            log_error("Erro de conexão no registro", e)
            raise AuthError("network") from e
        if response.is_success:
            identity = self._identity(response.json(), email)
            log_event(f"Conta registrada: {identity.email}")
            return identity

        code = _error_code(response)
        log_warning(f"Erro de registro: {code or response.status_code}")
        if code == "EMAIL_EXISTS":
            raise EmailInUse(code)
        raise AuthError(code)

    async def sign_out(self) -> None:
        # A API REST não mantém sessão no servidor; basta descartar os tokens
        return None


class FirestoreProfileStore(_RestAdapter):
    """Documento users/{uid} com o papel do usuário."""

    def __init__(self, project_id: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        super().__init__(client, timeout)
        self.project_id = project_id

    def _doc_url(self, uid: str) -> str:
        return f"{FIRESTORE_URL.format(project=self.project_id)}/users/{quote(uid, safe='')}"

    @staticmethod
    def _headers(identity: Identity) -> Dict[str, str]:
        return {"Authorization": f"Bearer {identity.id_token}"} if identity.id_token else {}

    async def get_role(self, identity: Identity) -> Optional[str]:
        """Papel salvo no perfil, ou None quando o perfil não existe."""
        response = await self.client.get(self._doc_url(identity.uid), headers=self._headers(identity))
        if response.status_code == 404:
            return None
        response.raise_for_status()
        fields = response.json().get("fields") or {}
        role = (fields.get("role") or {}).get("stringValue")
        return role or None

    async def create_profile(self, identity: Identity, role: str) -> None:
        body = {
            "fields": {
                "email": {"stringValue": identity.email},
                "role": {"stringValue": role},
            }
        }
        response = await self.client.patch(self._doc_url(identity.uid), headers=self._headers(identity), json=body)
        response.raise_for_status()


@dataclass(frozen=True)
class StorageReference:
    bucket: str
    path: str
    token: str = ""


class FirebaseStorage(_RestAdapter):
    """Upload de imagens de produtos no Firebase Storage."""

    def __init__(self, bucket: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        super().__init__(client, timeout)
        self.bucket = bucket

    async def upload(self, path: str, data: bytes, id_token: str = "") -> StorageReference:
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        headers = {"Content-Type": content_type}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"
        url = STORAGE_URL.format(bucket=self.bucket)
        try:
            response = await self.client.post(
                url, params={"uploadType": "media", "name": path}, content=data, headers=headers
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Falha ao enviar {path}: {e}") from e
        if not response.is_success:
            log_error(f"Upload falhou ({response.status_code}): {response.text[:300]}")
            raise StorageError(f"Falha ao enviar {path} (HTTP {response.status_code})")

        body = response.json()
        token = str(body.get("downloadTokens") or "").split(",")[0]
        log_event(f"Imagem enviada: {path}")
        return StorageReference(bucket=body.get("bucket") or self.bucket, path=body.get("name") or path, token=token)

    def get_public_url(self, reference: StorageReference) -> str:
        url = f"{STORAGE_URL.format(bucket=reference.bucket)}/{quote(reference.path, safe='')}?alt=media"
        if reference.token:
            url += f"&token={reference.token}"
        return url
