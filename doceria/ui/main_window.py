# main_window.py
# Janela principal: menu lateral por papel, dashboard e alarme de pedidos

import concurrent.futures
from typing import Awaitable, Callable, Dict, List, Optional

from PyQt6.QtCore import QSize, Qt, QTimer
from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import (
    QFrame, QHBoxLayout, QLabel, QListWidget, QListWidgetItem, QMainWindow, QMessageBox,
    QPushButton, QStackedWidget, QVBoxLayout, QWidget,
)
import qtawesome as qta

from doceria.alarm import AlarmController
from doceria.copywriter import Copywriter
from doceria.logger import log_error, log_event, log_warning
from doceria.menu import LANDING_PAGE, MASTER_MENU, can_view, visible_menu
from doceria.models import Session
from doceria.services import AuthService, CustomerService, OrderService, ProductService
from doceria.sync import PollingSynchronizer, Snapshot
from doceria.ui.dashboard import BasePage, DashboardPage, PlaceholderPage
from doceria.ui.dialogs.login_dialog import Done, LoginDialog
from doceria.ui.event_loop import BackgroundLoop, CoreBridge
from doceria.ui.pages import CustomersPage, OrdersPage, ProductsPage, RecordPage, SettingsPage

CLOCK_REFRESH_MS = 60_000


def safe_qta_icon(icon_name: str, color: str = "#000000") -> QIcon:
    """Retorna ícone QtAwesome; nome desconhecido vira ícone vazio"""
    try:
        return qta.icon(icon_name, color=color)
    except Exception:
        return QIcon()


class LandingPage(BasePage):
    def __init__(self) -> None:
        super().__init__("Página Inicial", "Doceria")
        layout = QVBoxLayout(self.body)
        about = QLabel(
            "Somos uma doceria apaixonada por criar momentos doces e inesquecíveis. "
            "Cada bolo, torta e doce é feito com ingredientes de alta qualidade e muito carinho."
        )
        about.setWordWrap(True)
        layout.addWidget(about)
        hours = QLabel("Segunda a Sexta: 09:30 – 18:30<br>Sábado: 09:00 – 14:00<br>Domingo: Fechado")
        layout.addWidget(hours)
        self.v.addStretch(1)


class MainWindow(QMainWindow):
    def __init__(
        self,
        loop: BackgroundLoop,
        bridge: CoreBridge,
        auth: AuthService,
        sync: PollingSynchronizer,
        alarm: AlarmController,
        orders: OrderService,
        products: ProductService,
        customers: CustomerService,
        copywriter: Copywriter,
        apply_theme: Callable[[str], None],
        shutdown: Callable[[], Awaitable[None]],
    ):
        super().__init__()
        self.loop = loop
        self.bridge = bridge
        self.auth = auth
        self.sync = sync
        self.alarm = alarm
        self._shutdown = shutdown
        self.session: Optional[Session] = None

        self.setWindowTitle("Doceria")
        self.resize(1100, 700)
        self.setMinimumSize(800, 600)

        root = QWidget()
        self.setCentralWidget(root)
        hl = QHBoxLayout(root)

        # Sidebar
        self.sidebar = QListWidget()
        self.sidebar.setObjectName("Sidebar")
        self.sidebar.setIconSize(QSize(20, 20))
        self.sidebar.setFixedWidth(220)
        self.sidebar.currentItemChanged.connect(self._on_menu_item)
        hl.addWidget(self.sidebar)

        right = QWidget()
        right_v = QVBoxLayout(right)

        # Header
        header = QWidget()
        header_l = QHBoxLayout(header)
        self.lbl_user = QLabel("Visitante")
        self.btn_auth = QPushButton("Entrar")
        self.btn_auth.clicked.connect(self._on_auth_button)
        header_l.addStretch(1)
        header_l.addWidget(self.lbl_user)
        header_l.addWidget(self.btn_auth)
        right_v.addWidget(header)

        # Faixa do alarme de novo pedido
        self.alarm_banner = QFrame()
        self.alarm_banner.setObjectName("AlarmBanner")
        self.alarm_banner.setStyleSheet(
            "QFrame#AlarmBanner { background: #dc2626; border-radius: 8px; }"
            "QLabel { color: white; font-weight: bold; font-size: 14px; }"
        )
        banner_l = QHBoxLayout(self.alarm_banner)
        banner_l.addWidget(QLabel("🔔 Novo pedido recebido!"))
        banner_l.addStretch(1)
        btn_stop = QPushButton("Parar alarme")
        btn_stop.clicked.connect(self.stop_alarm)
        banner_l.addWidget(btn_stop)
        self.alarm_banner.hide()
        right_v.addWidget(self.alarm_banner)

        # Pages
        self.stack = QStackedWidget()
        self.dashboard = DashboardPage()
        self.record_pages: List[RecordPage] = [
            OrdersPage(loop, bridge, orders),
            CustomersPage(loop, bridge, customers, copywriter),
            ProductsPage(loop, bridge, products, copywriter, auth),
        ]
        built: Dict[str, QWidget] = {
            LANDING_PAGE: LandingPage(),
            'dashboard': self.dashboard,
            'pedidos': self.record_pages[0],
            'clientes': self.record_pages[1],
            'produtos': self.record_pages[2],
            'configuracoes': SettingsPage(apply_theme),
        }
        self.pages: Dict[str, QWidget] = {}
        for entry in MASTER_MENU:
            page = built.get(entry.id)
            if page is None:
                page = PlaceholderPage(entry.label)
            self.pages[entry.id] = page
            self.stack.addWidget(page)
        right_v.addWidget(self.stack, 1)
        hl.addWidget(right, 1)

        self.bridge.snapshot_changed.connect(self.dashboard.set_snapshot)
        for record_page in self.record_pages:
            self.bridge.snapshot_changed.connect(record_page.set_snapshot)
        self.bridge.alarm_changed.connect(self._on_alarm_changed)
        self.bridge.session_changed.connect(self._on_session_changed)
        self.bridge.task_failed.connect(self._show_error)

        # Janelas de hoje/semana mudam com o relógio, não só com os dados
        self.clock_timer = QTimer(self)
        self.clock_timer.timeout.connect(self.dashboard.refresh)
        self.clock_timer.start(CLOCK_REFRESH_MS)

        self._rebuild_menu()
        self.navigate(LANDING_PAGE)

    # Navegação

    def _rebuild_menu(self) -> None:
        role = self.session.role if self.session else None
        self.sidebar.blockSignals(True)
        self.sidebar.clear()
        for entry in visible_menu(role):
            item = QListWidgetItem(safe_qta_icon(entry.icon, color="#db2777"), entry.label)
            item.setData(Qt.ItemDataRole.UserRole, entry.id)
            self.sidebar.addItem(item)
        self.sidebar.blockSignals(False)

    def navigate(self, page_id: str) -> None:
        role = self.session.role if self.session else None
        if not can_view(role, page_id):
            log_warning(f"Acesso negado à página '{page_id}'")
            page_id = LANDING_PAGE
        self.stack.setCurrentWidget(self.pages[page_id])
        for row in range(self.sidebar.count()):
            item = self.sidebar.item(row)
            if item is not None and item.data(Qt.ItemDataRole.UserRole) == page_id:
                self.sidebar.blockSignals(True)
                self.sidebar.setCurrentRow(row)
                self.sidebar.blockSignals(False)
                break

    def _on_menu_item(self, current: Optional[QListWidgetItem], _previous) -> None:
        if current is not None:
            self.navigate(current.data(Qt.ItemDataRole.UserRole))

    # Sessão

    def _on_auth_button(self) -> None:
        if self.session is None:
            LoginDialog(self._authenticate, self).exec()
        else:
            self.bridge.watch(self.loop.submit(self.auth.sign_out()), "sair")

    def _authenticate(self, email: str, password: str, registering: bool, done: Done) -> None:
        # O resultado volta ao diálogo pelo sinal da ponte, sem bloquear a UI
        self.bridge.watch(self.loop.submit(self.auth.attempt(email, password, registering)), "entrar", done)

    def _on_session_changed(self, session: Optional[Session]) -> None:
        self.session = session
        self._rebuild_menu()
        if session is not None:
            self.lbl_user.setText(f"{session.identity.email} ({session.role.value})")
            self.btn_auth.setText("Sair")
            self.bridge.watch(self.loop.submit(self.sync.start()), "iniciar a sincronização")
            self.navigate('dashboard')
        else:
            self.lbl_user.setText("Visitante")
            self.btn_auth.setText("Entrar")
            self.bridge.watch(self.loop.submit(self.sync.stop()), "parar a sincronização")
            self.stop_alarm()
            empty = Snapshot.empty()
            self.dashboard.set_snapshot(empty)
            for record_page in self.record_pages:
                record_page.set_snapshot(empty)
            self.navigate(LANDING_PAGE)

    # Alarme

    def stop_alarm(self) -> None:
        self.loop.call_soon(self.alarm.stop_alarm)

    def _on_alarm_changed(self, active: bool) -> None:
        self.alarm_banner.setVisible(active)
        if active:
            self.raise_()
            self.activateWindow()

    def _show_error(self, message: str) -> None:
        QMessageBox.warning(self, "Erro", message)

    def closeEvent(self, event) -> None:
        log_event("Encerrando aplicação")
        self.clock_timer.stop()
        try:
            self.loop.submit(self._shutdown()).result(timeout=5)
        except concurrent.futures.TimeoutError:
            log_warning("Tempo esgotado ao encerrar a sincronização")
        except Exception as e:
            log_error("Erro ao encerrar a sincronização", e)
        self.loop.shutdown()
        super().closeEvent(event)
