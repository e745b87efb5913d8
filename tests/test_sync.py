# tests/test_sync.py
import asyncio

import httpx
import pytest

from doceria.exceptions import RequestFailed
from doceria.models import COLLECTIONS
from doceria.sync import PollingSynchronizer, Snapshot, SyncState

from conftest import order

pytestmark = pytest.mark.asyncio


def record_new_orders(sync):
    calls = []
    sync.on_new_order(lambda snapshot, delta: calls.append(delta))
    return calls


async def test_first_refresh_never_alarms(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2), order(3)]
    calls = record_new_orders(sync)

    assert sync.state is SyncState.UNINITIALIZED
    assert await sync.refresh() is False
    assert sync.state is SyncState.INITIALIZED
    assert calls == []
    assert len(sync.snapshot.pedidos) == 3


async def test_increase_alarms_exactly_once(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    calls = record_new_orders(sync)
    await sync.refresh()

    backend.collections["pedidos"].append(order(2))
    assert await sync.refresh() is True
    assert calls == [1]

    # Mesma contagem no ciclo seguinte
    assert await sync.refresh() is False
    assert calls == [1]


async def test_decrease_or_non_pending_does_not_alarm(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2)]
    calls = record_new_orders(sync)
    await sync.refresh()

    backend.collections["pedidos"][0]["status"] = "Em Produção"
    backend.collections["pedidos"].append(order(3, status="Finalizado"))
    assert await sync.refresh() is False
    assert calls == []


async def test_new_and_resolved_in_same_cycle_is_not_detected(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    calls = record_new_orders(sync)
    await sync.refresh()

    backend.collections["pedidos"][0]["status"] = "Finalizado"
    backend.collections["pedidos"].append(order(2))
    assert await sync.refresh() is False
    assert calls == []


async def test_failing_collection_degrades_alone(sync, backend):
    backend.collections["clientes"] = [{"id": "1", "nome": "Ana"}]
    backend.collections["pedidos"] = [order(1)]
    backend.fail("GET", "produtos", 500)
    backend.respond("GET", "despesas", lambda request: httpx.Response(200, json={"error": "Internal"}))

    await sync.refresh()
    snapshot = sync.snapshot
    assert snapshot.produtos == ()
    assert snapshot.despesas == ()
    assert len(snapshot.clientes) == 1
    assert len(snapshot.pedidos) == 1


async def test_orders_unavailable_on_first_cycle_keeps_uninitialized(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2)]
    backend.fail("GET", "pedidos", 503)
    calls = record_new_orders(sync)

    await sync.refresh()
    assert sync.state is SyncState.UNINITIALIZED

    backend.clear("GET", "pedidos")
    assert await sync.refresh() is False
    assert sync.state is SyncState.INITIALIZED
    assert calls == []


async def test_orders_outage_does_not_alarm_on_recovery(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2)]
    calls = record_new_orders(sync)
    await sync.refresh()

    backend.fail("GET", "pedidos", 500)
    await sync.refresh()
    assert sync.snapshot.pedidos == ()

    backend.clear("GET", "pedidos")
    assert await sync.refresh() is False
    assert calls == []


async def test_snapshot_is_replaced_not_mutated(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    await sync.refresh()
    before = sync.snapshot

    backend.collections["pedidos"].append(order(2))
    await sync.refresh()

    assert len(before.pedidos) == 1
    assert len(sync.snapshot.pedidos) == 2
    assert sync.snapshot is not before


async def test_delete_removes_locally_without_refetch(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2)]
    await sync.refresh()
    gets = {name: backend.count("GET", name) for name in COLLECTIONS}

    await sync.delete_item("pedidos", 2)

    assert [p["id"] for p in sync.snapshot.pedidos] == ["1"]
    assert backend.count("DELETE", "pedidos/2") == 1
    assert {name: backend.count("GET", name) for name in COLLECTIONS} == gets


async def test_deleted_pending_order_updates_baseline(sync, backend):
    backend.collections["pedidos"] = [order(1), order(2)]
    calls = record_new_orders(sync)
    await sync.refresh()

    await sync.delete_item("pedidos", "1")
    backend.collections["pedidos"].append(order(3))

    assert await sync.refresh() is True
    assert calls == [1]


async def test_delete_failure_keeps_snapshot(sync, backend):
    backend.collections["clientes"] = [{"id": "1", "nome": "Ana"}]
    await sync.refresh()
    backend.fail("DELETE", "clientes/1", 500)

    with pytest.raises(RequestFailed):
        await sync.delete_item("clientes", "1")
    assert len(sync.snapshot.clientes) == 1


async def test_create_and_update_trigger_full_refresh(sync, backend):
    await sync.refresh()
    created = await sync.create_item("clientes", {"nome": "Bia"})
    assert backend.count("GET", "clientes") == 2
    assert sync.snapshot.clientes[0]["nome"] == "Bia"

    await sync.update_item("clientes", created["id"], {"status": "VIP"})
    assert all(backend.count("GET", name) == 3 for name in COLLECTIONS)
    assert sync.snapshot.clientes[0]["status"] == "VIP"


async def test_created_pending_order_alarms(sync, backend):
    calls = record_new_orders(sync)
    await sync.refresh()
    await sync.create_item("pedidos", order(9))
    assert calls == [1]


async def test_mutation_failure_propagates(sync, backend):
    backend.fail("POST", "pedidos", 400)
    with pytest.raises(RequestFailed) as info:
        await sync.create_item("pedidos", order(1))
    assert info.value.status == 400
    assert backend.count("GET", "pedidos") == 0


async def test_snapshot_listener_and_unsubscribe(sync, backend):
    seen = []
    unsubscribe = sync.on_snapshot(seen.append)
    await sync.refresh()
    unsubscribe()
    await sync.refresh()
    assert len(seen) == 1
    assert isinstance(seen[0], Snapshot)


async def test_failing_listener_does_not_break_refresh(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    await sync.refresh()
    backend.collections["pedidos"].append(order(2))

    def broken(snapshot, delta):
        raise RuntimeError("ouvinte quebrado")

    calls = []
    sync.on_new_order(broken)
    sync.on_new_order(lambda snapshot, delta: calls.append(delta))
    assert await sync.refresh() is True
    assert calls == [1]


async def test_start_and_stop_are_idempotent(sync, backend):
    await sync.start()
    first_task = sync._poll_task
    await sync.start()
    assert sync._poll_task is first_task
    assert sync.is_polling

    await asyncio.sleep(0.05)
    assert backend.count("GET", "pedidos") >= 2

    await sync.stop()
    await sync.stop()
    assert not sync.is_polling

    polled = backend.count("GET", "pedidos")
    await asyncio.sleep(0.03)
    assert backend.count("GET", "pedidos") == polled


async def test_restart_begins_new_session_without_alarm(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    calls = record_new_orders(sync)
    await sync.start()
    await asyncio.sleep(0.03)
    assert sync.state is SyncState.INITIALIZED
    await sync.stop()

    assert sync.state is SyncState.UNINITIALIZED
    assert sync.snapshot.pedidos == ()

    # Pedidos chegaram enquanto a sincronização estava parada
    backend.collections["pedidos"] += [order(2), order(3)]
    await sync.start()
    await asyncio.sleep(0.03)
    await sync.stop()

    assert calls == []
    assert backend.count("GET", "pedidos") >= 2


async def test_restart_then_increase_alarms(sync, backend):
    backend.collections["pedidos"] = [order(1)]
    calls = record_new_orders(sync)
    await sync.refresh()
    await sync.stop()

    backend.collections["pedidos"].append(order(2))
    assert await sync.refresh() is False
    backend.collections["pedidos"].append(order(3))
    assert await sync.refresh() is True
    assert calls == [1]


async def test_collections_are_fetched_concurrently(sync, monkeypatch):
    requested = {"clientes": asyncio.Event(), "pedidos": asyncio.Event()}
    started = []

    async def fetch_collection(name):
        started.append(name)
        if name == "pedidos":
            requested["pedidos"].set()
            # Só termina se a busca de clientes estiver em andamento ao mesmo tempo
            await requested["clientes"].wait()
            return [order(1)]
        if name == "clientes":
            requested["clientes"].set()
            await requested["pedidos"].wait()
        return []

    monkeypatch.setattr(sync.gateway, "fetch_collection", fetch_collection)

    assert await asyncio.wait_for(sync.refresh(), timeout=1) is False
    assert sorted(started) == sorted(COLLECTIONS)
    assert len(sync.snapshot.pedidos) == 1


async def test_polling_survives_failures(gateway, backend):
    backend.fail("GET", "pedidos", 500)
    sync = PollingSynchronizer(gateway, interval=0.01)
    await sync.start()
    await asyncio.sleep(0.05)
    await sync.stop()
    assert backend.count("GET", "pedidos") >= 2
    assert sync.state is SyncState.UNINITIALIZED


async def test_pending_count_uses_pendente_only():
    snapshot = Snapshot({"pedidos": [order(1), order(2, status="Em Produção"), order(3, status="Pendente")]})
    assert snapshot.pending_count() == 2
    assert snapshot.without("pedidos", 3).pending_count() == 1
