# sync.py
# Sincronização periódica das coleções e detecção de novos pedidos

import asyncio
import contextlib
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from doceria.exceptions import RequestFailed
from doceria.gateway import RemoteDataGateway
from doceria.logger import log_debug, log_error, log_event, log_warning
from doceria.models import COLLECTIONS, OrderStatus, Record

POLL_INTERVAL_SECONDS = 30.0

NewOrderListener = Callable[["Snapshot", int], Any]
SnapshotListener = Callable[["Snapshot"], Any]


class SyncState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class Snapshot:
    """Cópia imutável das quatro coleções, trocada inteira a cada ciclo."""

    __slots__ = ("_data",)

    def __init__(self, collections: Optional[Mapping[str, Sequence[Record]]] = None):
        collections = collections or {}
        self._data = MappingProxyType({
            name: tuple(collections.get(name) or ()) for name in COLLECTIONS
        })

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    def __getitem__(self, name: str) -> Tuple[Record, ...]:
        return self._data[name]

    def get(self, name: str) -> Tuple[Record, ...]:
        return self._data.get(name, ())

    def as_dict(self) -> Dict[str, List[Record]]:
        return {name: list(records) for name, records in self._data.items()}

    @property
    def clientes(self) -> Tuple[Record, ...]:
        return self._data["clientes"]

    @property
    def pedidos(self) -> Tuple[Record, ...]:
        return self._data["pedidos"]

    @property
    def produtos(self) -> Tuple[Record, ...]:
        return self._data["produtos"]

    @property
    def despesas(self) -> Tuple[Record, ...]:
        return self._data["despesas"]

    def pending_count(self) -> int:
        """Quantidade de pedidos com status Pendente."""
        return sum(1 for p in self.pedidos if p.get("status") == OrderStatus.PENDENTE.value)

    def without(self, collection: str, record_id: Any) -> "Snapshot":
        data = self.as_dict()
        data[collection] = [r for r in data.get(collection, []) if str(r.get("id")) != str(record_id)]
        return Snapshot(data)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{name}={len(records)}" for name, records in self._data.items())
        return f"Snapshot({sizes})"


class PollingSynchronizer:
    """
    Dono do Snapshot. Atualiza a cada `interval` segundos e sob demanda.

    Ao fim de cada ciclo compara a quantidade de pedidos Pendente com a do
    ciclo anterior e avisa os ouvintes de novo pedido quando ela aumenta. O
    primeiro ciclo com a coleção de pedidos carregada apenas define a base
    de comparação.
    """

    def __init__(self, gateway: RemoteDataGateway, interval: float = POLL_INTERVAL_SECONDS):
        self.gateway = gateway
        self.interval = interval
        self.state = SyncState.UNINITIALIZED
        self._snapshot = Snapshot.empty()
        self._last_pending = 0
        self._orders_current = False
        self._lock = asyncio.Lock()
        self._poll_task: Optional[asyncio.Task] = None
        self._new_order_listeners: List[NewOrderListener] = []
        self._snapshot_listeners: List[SnapshotListener] = []

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # Ouvintes

    def on_new_order(self, callback: NewOrderListener) -> Callable[[], None]:
        self._new_order_listeners.append(callback)
        return lambda: self._remove(self._new_order_listeners, callback)

    def on_snapshot(self, callback: SnapshotListener) -> Callable[[], None]:
        self._snapshot_listeners.append(callback)
        return lambda: self._remove(self._snapshot_listeners, callback)

    @staticmethod
    def _remove(listeners: list, callback: Callable) -> None:
        if callback in listeners:
            listeners.remove(callback)

    @staticmethod
    def _notify(listeners: list, *args: Any) -> None:
        for callback in list(listeners):
            try:
                callback(*args)
            except Exception as e:
                log_error(f"Erro no ouvinte {getattr(callback, '__name__', callback)!r}", e)

    # Ciclo de atualização

    async def _fetch(self, name: str) -> Tuple[List[Record], bool]:
        try:
            return await self.gateway.fetch_collection(name), True
        except RequestFailed as e:
            log_warning(f"Coleção '{name}' indisponível neste ciclo: {e}")
            return [], False

    async def refresh(self) -> bool:
        """
        Busca as quatro coleções em paralelo e substitui o Snapshot.

        Returns:
            bool: True se um novo pedido pendente foi detectado neste ciclo
        """
        async with self._lock:
            results = await asyncio.gather(*(self._fetch(name) for name in COLLECTIONS))
            fetched = dict(zip(COLLECTIONS, results))
            snapshot = Snapshot({name: records for name, (records, _) in fetched.items()})
            orders_ok = fetched["pedidos"][1]

            previous = self._last_pending
            pending = snapshot.pending_count()
            detected = False
            if orders_ok:
                if self.state is SyncState.INITIALIZED and pending > previous:
                    detected = True
                self._last_pending = pending
                self.state = SyncState.INITIALIZED
            self._orders_current = orders_ok
            self._snapshot = snapshot

        log_debug(f"Dados atualizados: {snapshot!r}")
        self._notify(self._snapshot_listeners, snapshot)
        if detected:
            log_event(f"🔔 Novo pedido detectado ({previous} -> {pending} pendentes)")
            self._notify(self._new_order_listeners, snapshot, pending - previous)
        return detected

    async def _poll_forever(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                log_error("Erro ao atualizar dados da API", e)
            await asyncio.sleep(self.interval)

    async def start(self) -> None:
        """Inicia o timer de atualização (primeiro ciclo imediato)."""
        if self.is_polling:
            return
        log_event(f"Sincronização iniciada (intervalo de {self.interval:g}s)")
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_forever())

    async def stop(self) -> None:
        """
        Cancela o timer de atualização e volta ao estado inicial.

        O próximo `start()` começa uma sessão nova: Snapshot vazio e sem base
        de comparação, então o primeiro ciclo dela não dispara o alarme.
        Chamadas repetidas não fazem nada.
        """
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            log_event("Sincronização encerrada")
        async with self._lock:
            self.state = SyncState.UNINITIALIZED
            self._last_pending = 0
            self._orders_current = False
            self._snapshot = Snapshot.empty()

    # Mutações

    async def create_item(self, collection: str, payload: Record) -> Optional[Record]:
        created = await self.gateway.create_record(collection, payload)
        await self.refresh()
        return created

    async def update_item(self, collection: str, record_id: Any, payload: Record) -> Optional[Record]:
        updated = await self.gateway.update_record(collection, record_id, payload)
        await self.refresh()
        return updated

    async def delete_item(self, collection: str, record_id: Any) -> None:
        """Exclui no servidor e remove do Snapshot local, sem nova busca."""
        await self.gateway.delete_record(collection, record_id)
        async with self._lock:
            self._snapshot = self._snapshot.without(collection, record_id)
            if collection == "pedidos" and self._orders_current:
                self._last_pending = self._snapshot.pending_count()
            snapshot = self._snapshot
        self._notify(self._snapshot_listeners, snapshot)
