# event_loop.py
# Event loop asyncio rodando em thread separada da interface

import asyncio
import concurrent.futures
import threading
from typing import Any, Awaitable, Callable, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from doceria.logger import log_error, log_event


class BackgroundLoop(QThread):
    """Thread com o event loop da sincronização (evita travar a UI)."""

    def __init__(self):
        super().__init__()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = threading.Event()

    def run(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._started.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            log_event("Event loop de sincronização encerrado")

    def start_and_wait(self, timeout: float = 5.0) -> None:
        self.start()
        if not self._started.wait(timeout):
            raise RuntimeError("Event loop de sincronização não iniciou")

    def submit(self, coro: Awaitable[Any]) -> concurrent.futures.Future:
        """Agenda a corrotina no loop; pode ser chamado da thread da UI."""
        if self._loop is None:
            raise RuntimeError("Event loop de sincronização não iniciado")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call_soon(self, func: Callable[..., Any], *args: Any) -> None:
        if self._loop is None:
            raise RuntimeError("Event loop de sincronização não iniciado")
        self._loop.call_soon_threadsafe(func, *args)

    def shutdown(self, timeout_ms: int = 5000) -> None:
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        self.wait(timeout_ms)


class CoreBridge(QObject):
    """Sinais emitidos pelo núcleo (thread do loop) e tratados na thread da UI."""
    snapshot_changed = pyqtSignal(object)  # Snapshot
    alarm_changed = pyqtSignal(bool)  # ativo?
    session_changed = pyqtSignal(object)  # Session | None
    task_failed = pyqtSignal(str)  # mensagem para o usuário
    result_ready = pyqtSignal(object, object)  # (callback, resultado)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.result_ready.connect(self._deliver)

    def _deliver(self, callback: Callable[[Any], Any], result: Any) -> None:
        callback(result)

    def watch(
        self,
        future: concurrent.futures.Future,
        action: str,
        on_success: Optional[Callable[[Any], Any]] = None,
    ) -> concurrent.futures.Future:
        """
        Acompanha uma operação agendada no loop.

        Falhas viram `task_failed`; com `on_success`, o resultado é entregue
        ao callback já na thread da UI.
        """
        def done(fut: concurrent.futures.Future) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                log_error(f"Erro ao {action}", exc)
                self.task_failed.emit(f"Erro ao {action}: {exc}")
            elif on_success is not None:
                self.result_ready.emit(on_success, fut.result())
        future.add_done_callback(done)
        return future
