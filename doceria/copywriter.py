# copywriter.py
# Textos de marketing gerados pela API Gemini

from typing import Any, Dict, Optional

import httpx

from doceria.config import DEFAULT_GEMINI_MODEL
from doceria.exceptions import GenerationFailed
from doceria.logger import log_debug, log_error

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.model = model
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @staticmethod
    def _first_text(result: Dict[str, Any]) -> Optional[str]:
        candidates = result.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None
        return parts[0].get("text")

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationFailed("Chave da API Gemini não configurada")

        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        log_debug(f"Gemini prompt: '{prompt[:80]}...'")
        try:
            response = await self.client.post(
                GEMINI_URL.format(model=self.model), params={"key": self.api_key}, json=payload
            )
        except httpx.HTTPError as e:
            log_error("Erro ao chamar a API Gemini", e)
            raise GenerationFailed(str(e)) from e

        if not response.is_success:
            log_error(f"Erro da API Gemini: {response.status_code} {response.reason_phrase}")
            raise GenerationFailed(f"API error: {response.reason_phrase}")

        text = self._first_text(response.json())
        if not text:
            raise GenerationFailed("Não foi possível gerar o conteúdo.")
        return text.strip()


class Copywriter:
    """Prompts de marketing da doceria."""

    def __init__(self, generator: GeminiClient):
        self.generator = generator

    async def birthday_message(self, customer: Dict[str, Any]) -> str:
        prompt = (
            f"Crie uma mensagem de aniversário curta e amigável para um cliente chamado {customer.get('nome', '')}. "
            f"O cliente tem o status \"{customer.get('status', 'Ativo')}\" na nossa doceria. "
            "A mensagem deve ser calorosa e convidativa."
        )
        return await self.generator.generate(prompt)

    async def product_description(self, nome: str, categoria: str) -> str:
        if not nome or not categoria:
            raise ValueError("Preencha o nome e a categoria do produto primeiro.")
        prompt = (
            f"Crie uma descrição de produto curta e atraente para um(a) \"{nome}\" da categoria \"{categoria}\" "
            "de uma doceria. A descrição deve ser apetitosa e destacar a qualidade."
        )
        return await self.generator.generate(prompt)
