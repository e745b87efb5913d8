# dashboard.py
# Dashboard com os indicadores de vendas e pedidos

from datetime import datetime
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QFrame, QGridLayout, QHBoxLayout, QLabel, QVBoxLayout, QWidget

from doceria.metrics import DashboardMetrics, compute_metrics, format_price_br
from doceria.sync import Snapshot


class BasePage(QWidget):
    def __init__(self, title: str, subtitle: str = "") -> None:
        super().__init__()
        self.v = QVBoxLayout(self)
        head = QWidget()
        hl = QHBoxLayout(head)
        t = QLabel(f"<h2 style='margin:0'>{title}</h2>")
        s = QLabel(subtitle)
        s.setObjectName("subtitle")
        hl.addWidget(t)
        hl.addStretch(1)
        hl.addWidget(s)
        self.v.addWidget(head)
        self.body = QWidget()
        self.v.addWidget(self.body)
        self.v.setContentsMargins(16, 16, 16, 16)


class PlaceholderPage(BasePage):
    def __init__(self, title: str) -> None:
        super().__init__(title)
        layout = QVBoxLayout(self.body)
        label = QLabel(f"Página de {title} em construção.")
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(label)
        self.v.addStretch(1)


class DashboardPage(BasePage):
    """Cards com vendas de hoje/semana, pendências e clientes"""

    def __init__(self) -> None:
        super().__init__("Dashboard", "Visão geral de vendas e pedidos")
        self.snapshot = Snapshot.empty()

        grid = QGridLayout(self.body)
        grid.setSpacing(10)
        self.card_hoje = self._create_stat_card("💰 Vendas de Hoje", "R$ 0,00", "#ec4899")
        self.card_semana = self._create_stat_card("📅 Vendas da Semana", "R$ 0,00", "#8b5cf6")
        self.card_crm = self._create_stat_card("🧾 Pedidos Pendentes", "0", "#f59e0b")
        self.card_online = self._create_stat_card("🛒 Cardápio Online", "0", "#10b981")
        self.card_clientes = self._create_stat_card("👥 Clientes Ativos", "0", "#3b82f6")
        self.card_total = self._create_stat_card("📊 Total de Vendas", "R$ 0,00", "#6b7280")
        for i, card in enumerate((self.card_hoje, self.card_semana, self.card_crm,
                                  self.card_online, self.card_clientes, self.card_total)):
            grid.addWidget(card, i // 3, i % 3)

        self.lbl_updated = QLabel("Aguardando dados...")
        self.lbl_updated.setObjectName("subtitle")
        self.v.addWidget(self.lbl_updated)
        self.v.addStretch(1)

    def _create_stat_card(self, title: str, value: str, color: str) -> QFrame:
        """Cria um card de estatística"""
        card = QFrame()
        card.setObjectName("StatCard")
        card.setStyleSheet(f"""
            QFrame#StatCard {{
                background: qlineargradient(x1:0, y1:0, x2:1, y2:1,
                    stop:0 {color}, stop:1 {color}dd);
                border-radius: 10px;
                padding: 15px;
                min-height: 80px;
            }}
            QLabel {{
                color: white;
                background: transparent;
            }}
        """)

        layout = QVBoxLayout(card)
        layout.setSpacing(3)

        title_label = QLabel(title)
        title_label.setStyleSheet("font-size: 12px; font-weight: normal;")
        layout.addWidget(title_label)

        value_label = QLabel(value)
        value_label.setStyleSheet("font-size: 24px; font-weight: bold;")
        layout.addWidget(value_label)

        detail_label = QLabel("")
        detail_label.setStyleSheet("font-size: 11px;")
        layout.addWidget(detail_label)

        # Salvar referência aos labels
        card.value_label = value_label
        card.detail_label = detail_label
        return card

    def set_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.refresh()

    def refresh(self, now: Optional[datetime] = None) -> None:
        """Recalcula os indicadores com o relógio atual"""
        now = now or datetime.now()
        self.show_metrics(compute_metrics(self.snapshot, now))
        self.lbl_updated.setText(f"Atualizado às {now.strftime('%H:%M:%S')}")

    def show_metrics(self, m: DashboardMetrics) -> None:
        self.card_hoje.value_label.setText(format_price_br(m.sales_today))
        self.card_hoje.detail_label.setText(f"{m.count_sales_today} venda(s) finalizada(s)")
        self.card_semana.value_label.setText(format_price_br(m.sales_this_week))
        self.card_semana.detail_label.setText(f"{m.count_sales_this_week} venda(s) desde domingo")
        self.card_crm.value_label.setText(str(m.pending_crm_count))
        self.card_crm.detail_label.setText(f"{m.pending_count} aguardando início")
        self.card_online.value_label.setText(str(m.pending_online_count))
        self.card_clientes.value_label.setText(str(m.active_customer_count))
        self.card_total.value_label.setText(format_price_br(m.total_sales))
