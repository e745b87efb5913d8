# tone.py
# Gerador de tom do alarme usando QtMultimedia

import math
import os
import struct
import tempfile
import wave
from typing import Optional

from PyQt6.QtCore import QObject, QUrl, pyqtSignal
from PyQt6.QtMultimedia import QSoundEffect

from doceria.logger import log_debug

SAMPLE_RATE = 44100


def write_tone_wav(path: str, frequency: int, duration_ms: int, volume: float = 0.6) -> None:
    """Grava um bipe senoidal mono 16 bits, com rampa curta nas bordas."""
    frames = int(SAMPLE_RATE * duration_ms / 1000)
    ramp = max(1, int(SAMPLE_RATE * 0.005))
    samples = bytearray()
    for i in range(frames):
        envelope = min(1.0, i / ramp, (frames - i) / ramp)
        value = volume * envelope * math.sin(2 * math.pi * frequency * i / SAMPLE_RATE)
        samples += struct.pack('<h', int(value * 32767))
    with wave.open(path, 'wb') as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(bytes(samples))


class TonePlayer(QObject):
    """
    Dono do QSoundEffect, vive na thread da UI.

    Os pedidos chegam por sinais, então podem ser emitidos a partir da thread
    do event loop de sincronização.
    """
    open_requested = pyqtSignal()
    pulse_requested = pyqtSignal()
    close_requested = pyqtSignal()

    def __init__(self, frequency: int = 880, pulse_ms: int = 200, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.frequency = frequency
        self.pulse_ms = pulse_ms
        self._effect: Optional[QSoundEffect] = None
        self._wav_path: Optional[str] = None
        self.open_requested.connect(self._open)
        self.pulse_requested.connect(self._pulse)
        self.close_requested.connect(self._close)

    def _open(self) -> None:
        if self._effect is not None:
            return
        fd, path = tempfile.mkstemp(prefix='doceria_alarme_', suffix='.wav')
        os.close(fd)
        write_tone_wav(path, self.frequency, self.pulse_ms)
        effect = QSoundEffect(self)
        effect.setSource(QUrl.fromLocalFile(path))
        effect.setVolume(0.9)
        self._effect = effect
        self._wav_path = path
        log_debug(f"Tom do alarme preparado: {path}")

    def _pulse(self) -> None:
        if self._effect is not None:
            self._effect.play()

    def _close(self) -> None:
        effect, self._effect = self._effect, None
        path, self._wav_path = self._wav_path, None
        if effect is not None:
            effect.stop()
            effect.deleteLater()
        if path and os.path.exists(path):
            os.remove(path)


class QtToneGenerator:
    """ToneGenerator do AlarmController; repassa as chamadas ao TonePlayer."""

    def __init__(self, player: TonePlayer):
        self.player = player

    def open(self) -> None:
        self.player.open_requested.emit()

    def pulse(self, duration_ms: int) -> None:
        self.player.pulse_requested.emit()

    def close(self) -> None:
        self.player.close_requested.emit()
