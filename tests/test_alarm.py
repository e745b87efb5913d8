# tests/test_alarm.py
import asyncio

import pytest

from doceria.alarm import AlarmController, AlarmState

from conftest import order

pytestmark = pytest.mark.asyncio


async def test_trigger_starts_pulsing(alarm, tones):
    assert alarm.trigger() is True
    assert alarm.is_active
    assert len(tones) == 1 and tones[0].opened

    await asyncio.sleep(0.035)
    assert len(tones[0].pulses) >= 2
    assert set(tones[0].pulses) == {50}
    alarm.stop_alarm()


async def test_trigger_while_sounding_is_noop(alarm, tones):
    alarm.trigger()
    assert alarm.trigger() is False
    assert len(tones) == 1
    alarm.stop_alarm()


async def test_stop_closes_tone_and_stops_pulses(alarm, tones):
    alarm.trigger()
    await asyncio.sleep(0.015)
    assert alarm.stop_alarm() is True
    assert alarm.state is AlarmState.IDLE
    assert tones[0].closed

    pulses = len(tones[0].pulses)
    await asyncio.sleep(0.03)
    assert len(tones[0].pulses) == pulses


async def test_stop_while_idle_is_noop(alarm, tones):
    assert alarm.stop_alarm() is False
    assert alarm.state is AlarmState.IDLE
    assert tones == []


async def test_alarm_never_stops_by_itself(alarm, tones):
    alarm.trigger()
    await asyncio.sleep(0.06)
    assert alarm.is_active
    assert not tones[0].closed
    alarm.stop_alarm()


async def test_retrigger_after_stop_uses_new_tone(alarm, tones):
    alarm.trigger()
    alarm.stop_alarm()
    alarm.trigger()
    assert len(tones) == 2
    assert tones[0].closed and not tones[1].closed
    alarm.stop_alarm()


async def test_state_listeners(alarm):
    states = []
    alarm.on_state_change(states.append)
    alarm.trigger()
    alarm.trigger()
    alarm.stop_alarm()
    alarm.stop_alarm()
    assert states == [AlarmState.SOUNDING, AlarmState.IDLE]


async def test_pulse_failure_keeps_alarm_until_stopped():
    class BrokenTone:
        closed = False

        def open(self):
            pass

        def pulse(self, duration_ms):
            raise OSError("sem dispositivo de áudio")

        def close(self):
            self.closed = True

    tone = BrokenTone()
    alarm = AlarmController(lambda: tone, period=0.01)
    alarm.trigger()
    await asyncio.sleep(0.02)
    assert alarm.is_active
    alarm.stop_alarm()
    assert tone.closed


async def test_new_order_detection_triggers_alarm(sync, backend, alarm, tones):
    sync.on_new_order(alarm.trigger)
    backend.collections["pedidos"] = [order(1)]
    await sync.refresh()
    assert not alarm.is_active

    backend.collections["pedidos"].append(order(2))
    await sync.refresh()
    assert alarm.is_active

    backend.collections["pedidos"].append(order(3))
    await sync.refresh()
    assert len(tones) == 1
    alarm.stop_alarm()
