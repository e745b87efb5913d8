# alarm.py
# Alarme sonoro/visual de novo pedido

import asyncio
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from doceria.logger import log_error, log_event

ALARM_PERIOD_SECONDS = 1.0
ALARM_PULSE_MS = 200


class ToneGenerator(Protocol):
    def open(self) -> None: ...

    def pulse(self, duration_ms: int) -> None: ...

    def close(self) -> None: ...


class AlarmState(Enum):
    IDLE = "idle"
    SOUNDING = "sounding"


StateListener = Callable[[AlarmState], Any]


class AlarmController:
    """
    Máquina de dois estados: IDLE e SOUNDING.

    `trigger()` só tem efeito em IDLE e `stop_alarm()` só em SOUNDING. Não há
    desligamento automático: o alarme toca até alguém pará-lo.
    """

    def __init__(
        self,
        tone_factory: Callable[[], ToneGenerator],
        period: float = ALARM_PERIOD_SECONDS,
        pulse_ms: int = ALARM_PULSE_MS,
    ):
        self._tone_factory = tone_factory
        self.period = period
        self.pulse_ms = pulse_ms
        self.state = AlarmState.IDLE
        self._tone: Optional[ToneGenerator] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[StateListener] = []

    @property
    def is_active(self) -> bool:
        return self.state is AlarmState.SOUNDING

    def on_state_change(self, callback: StateListener) -> Callable[[], None]:
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def _set_state(self, state: AlarmState) -> None:
        self.state = state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception as e:
                log_error("Erro no ouvinte do alarme", e)

    def trigger(self, *_args: Any) -> bool:
        """IDLE -> SOUNDING. Precisa de um event loop em execução."""
        if self.state is AlarmState.SOUNDING:
            return False
        loop = asyncio.get_running_loop()
        tone = self._tone_factory()
        tone.open()
        self._tone = tone
        self._task = loop.create_task(self._pulse_loop(tone))
        log_event("🔔 Alarme de novo pedido ativado")
        self._set_state(AlarmState.SOUNDING)
        return True

    def stop_alarm(self) -> bool:
        """SOUNDING -> IDLE, liberando o gerador de tom antes de retornar."""
        if self.state is AlarmState.IDLE:
            return False
        task, self._task = self._task, None
        tone, self._tone = self._tone, None
        if task is not None:
            task.cancel()
        if tone is not None:
            tone.close()
        log_event("Alarme de novo pedido desligado")
        self._set_state(AlarmState.IDLE)
        return True

    async def _pulse_loop(self, tone: ToneGenerator) -> None:
        while True:
            try:
                tone.pulse(self.pulse_ms)
            except Exception as e:
                log_error("Falha ao emitir o som do alarme", e)
                return
            await asyncio.sleep(self.period)
