# Doceria.py
# Ponto de entrada do painel da doceria

import sys

from PyQt6.QtWidgets import QApplication, QMessageBox

from doceria.alarm import AlarmController, AlarmState
from doceria.config import AppSettings, get_settings
from doceria.copywriter import Copywriter, GeminiClient
from doceria.exceptions import ConfigError
from doceria.firebase import FirebaseIdentityProvider, FirebaseStorage, FirestoreProfileStore
from doceria.gateway import RemoteDataGateway
from doceria.logger import log_error, log_event, log_warning, setup_logging
from doceria.services import AuthService, CustomerService, OrderService, ProductService
from doceria.sync import PollingSynchronizer
from doceria.ui.event_loop import BackgroundLoop, CoreBridge
from doceria.ui.main_window import MainWindow
from doceria.ui.theme import stylesheet_for
from doceria.ui.tone import QtToneGenerator, TonePlayer


def wire_core(sync: PollingSynchronizer, alarm: AlarmController, auth: AuthService, bridge: CoreBridge) -> None:
    """Liga os eventos do núcleo entre si e aos sinais da interface."""
    sync.on_new_order(alarm.trigger)
    sync.on_snapshot(bridge.snapshot_changed.emit)
    alarm.on_state_change(lambda state: bridge.alarm_changed.emit(state is AlarmState.SOUNDING))
    auth.on_auth_state_change(bridge.session_changed.emit)


def main() -> None:
    if sys.platform == 'win32':
        # Console do Windows sem UTF-8 quebra nos emojis do log
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, 'reconfigure'):
                stream.reconfigure(encoding='utf-8', errors='replace')

    setup_logging()
    app = QApplication(sys.argv)
    try:
        settings = get_settings()
    except ConfigError as e:
        log_error("Configuração inválida, usando valores padrão", e)
        QMessageBox.warning(None, "Configuração", f"{e}\n\nOs valores padrão serão usados.")
        settings = AppSettings()
    app.setStyleSheet(stylesheet_for(settings.theme))
    log_event(f"API: {settings.api_base_url} | atualização a cada {settings.poll_interval:g}s")

    loop = BackgroundLoop()
    loop.start_and_wait()
    bridge = CoreBridge()
    player = TonePlayer(settings.alarm_frequency, settings.alarm_pulse_ms)

    gateway = RemoteDataGateway(settings.api_base_url, timeout=settings.request_timeout)
    sync = PollingSynchronizer(gateway, settings.poll_interval)
    alarm = AlarmController(lambda: QtToneGenerator(player), settings.alarm_period, settings.alarm_pulse_ms)
    provider = FirebaseIdentityProvider(settings.firebase_api_key, timeout=settings.request_timeout)
    profiles = FirestoreProfileStore(settings.firebase_project_id, timeout=settings.request_timeout)
    auth = AuthService(provider, profiles)
    storage = FirebaseStorage(settings.firebase_storage_bucket) if settings.firebase_storage_bucket else None
    if storage is None:
        log_warning("Bucket do Firebase Storage não configurado; upload de imagens desativado")
    gemini = GeminiClient(settings.gemini_api_key, settings.gemini_model)
    copywriter = Copywriter(gemini)
    orders = OrderService(sync)
    products = ProductService(sync, storage)
    customers = CustomerService(sync)

    async def shutdown() -> None:
        await sync.stop()
        alarm.stop_alarm()
        await gateway.aclose()
        await provider.aclose()
        await profiles.aclose()
        await gemini.aclose()
        if storage is not None:
            await storage.aclose()

    def apply_theme(theme: str) -> None:
        app.setStyleSheet(stylesheet_for(theme))

    win = MainWindow(
        loop, bridge, auth, sync, alarm,
        orders, products, customers, copywriter,
        apply_theme, shutdown,
    )
    wire_core(sync, alarm, auth, bridge)
    win.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
