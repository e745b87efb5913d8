# pages.py
# Páginas de pedidos, clientes, produtos e configurações

import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtWidgets import (
    QComboBox, QDialog, QDialogButtonBox, QFileDialog, QFormLayout, QHBoxLayout, QHeaderView, QLabel,
    QLineEdit, QMessageBox, QPushButton, QTableWidget, QTableWidgetItem, QTextEdit, QVBoxLayout, QWidget,
)

from doceria.config import THEMES, load_config, save_config, update_config
from doceria.copywriter import Copywriter
from doceria.exceptions import ConfigError
from doceria.logger import log_error, log_event
from doceria.metrics import format_price_br
from doceria.models import OrderStatus, Record
from doceria.services import AuthService, CustomerService, OrderService, ProductService
from doceria.sync import Snapshot
from doceria.ui.dashboard import BasePage
from doceria.ui.event_loop import BackgroundLoop, CoreBridge


class FormDialog(QDialog):
    """Formulário simples: cada campo é (chave, rótulo, opções ou None)."""

    def __init__(self, title: str, fields: Sequence[Tuple[str, str, Optional[List[str]]]],
                 values: Optional[Record] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setMinimumWidth(380)
        values = values or {}
        self.inputs: Dict[str, QWidget] = {}
        v = QVBoxLayout(self)
        form = QFormLayout()
        for key, label, options in fields:
            current = values.get(key)
            if options:
                w: QWidget = QComboBox()
                w.addItems(options)
                if current in options:
                    w.setCurrentText(str(current))
            elif key == "descricao":
                w = QTextEdit()
                w.setPlainText(str(current or ""))
                w.setFixedHeight(90)
            else:
                w = QLineEdit("" if current is None else str(current))
            self.inputs[key] = w
            form.addRow(f"{label}:", w)
        v.addLayout(form)
        self.extra = QHBoxLayout()
        v.addLayout(self.extra)
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        v.addWidget(buttons)

    def set_value(self, key: str, text: str) -> None:
        w = self.inputs[key]
        if isinstance(w, QTextEdit):
            w.setPlainText(text)
        elif isinstance(w, QComboBox):
            w.setCurrentText(text)
        else:
            w.setText(text)

    def values(self) -> Record:
        out: Record = {}
        for key, w in self.inputs.items():
            if isinstance(w, QComboBox):
                out[key] = w.currentText()
            elif isinstance(w, QTextEdit):
                out[key] = w.toPlainText().strip()
            else:
                out[key] = w.text().strip()
        return out


class RecordPage(BasePage):
    """Tabela de uma coleção do Snapshot; operações rodam no loop de sincronização."""

    collection = ""
    columns: Sequence[Tuple[str, str]] = ()  # (chave, título)

    def __init__(self, title: str, subtitle: str, loop: BackgroundLoop, bridge: CoreBridge) -> None:
        super().__init__(title, subtitle)
        self.loop = loop
        self.bridge = bridge
        self.records: List[Record] = []
        self.snapshot = Snapshot.empty()

        bl = QVBoxLayout(self.body)
        self.actions = QHBoxLayout()
        bl.addLayout(self.actions)
        self.table = QTableWidget(0, len(self.columns))
        self.table.setHorizontalHeaderLabels([title for _, title in self.columns])
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        if header := self.table.horizontalHeader():
            header.setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        bl.addWidget(self.table)

    def add_action(self, text: str, slot: Callable[[], None]) -> QPushButton:
        btn = QPushButton(text)
        btn.clicked.connect(slot)
        self.actions.addWidget(btn)
        return btn

    def run(self, coro: Awaitable[Any], action: str, on_success: Optional[Callable[[Any], Any]] = None) -> None:
        self.bridge.watch(self.loop.submit(coro), action, on_success)

    def cell(self, record: Record, key: str) -> str:
        value = record.get(key)
        return "" if value is None else str(value)

    def set_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.records = list(snapshot.get(self.collection))
        self.table.setRowCount(0)
        for record in self.records:
            row = self.table.rowCount()
            self.table.insertRow(row)
            for col, (key, _) in enumerate(self.columns):
                self.table.setItem(row, col, QTableWidgetItem(self.cell(record, key)))

    def selected(self) -> Optional[Record]:
        row = self.table.currentRow()
        if row < 0 or row >= len(self.records):
            QMessageBox.information(self, "Seleção", "Selecione um registro na tabela.")
            return None
        return self.records[row]

    def confirm(self, question: str) -> bool:
        answer = QMessageBox.question(self, "Confirmar", question)
        return answer == QMessageBox.StandardButton.Yes


class OrdersPage(RecordPage):
    collection = "pedidos"
    columns = (("id", "Nº"), ("clienteId", "Cliente"), ("status", "Status"),
               ("origem", "Origem"), ("total", "Total"), ("createdAt", "Criado em"))

    def __init__(self, loop: BackgroundLoop, bridge: CoreBridge, orders: OrderService) -> None:
        super().__init__("Pedidos", "Acompanhamento de pedidos", loop, bridge)
        self.orders = orders
        self.status_combo = QComboBox()
        self.status_combo.addItems([s.value for s in OrderStatus])
        self.actions.addWidget(QLabel("Status:"))
        self.actions.addWidget(self.status_combo)
        self.add_action("Aplicar", self.apply_status)
        self.add_action("Excluir", self.delete)
        self.actions.addStretch(1)

    def cell(self, record: Record, key: str) -> str:
        if key == "total":
            try:
                return format_price_br(float(record.get("total") or 0))
            except (TypeError, ValueError):
                return ""
        if key == "clienteId":
            cliente_id = str(record.get("clienteId"))
            for c in self.snapshot.clientes:
                if str(c.get("id")) == cliente_id:
                    return str(c.get("nome") or cliente_id)
        return super().cell(record, key)

    def apply_status(self) -> None:
        record = self.selected()
        if record is not None:
            self.run(self.orders.set_status(record, self.status_combo.currentText()), "atualizar o pedido")

    def delete(self) -> None:
        record = self.selected()
        if record is not None and self.confirm(f"Excluir o pedido {record.get('id')}?"):
            self.run(self.orders.delete(record["id"]), "excluir o pedido")


CUSTOMER_FIELDS = (
    ("nome", "Nome", None),
    ("email", "Email", None),
    ("telefone", "Telefone", None),
    ("endereco", "Endereço", None),
    ("aniversario", "Aniversário (AAAA-MM-DD)", None),
    ("status", "Status", ["Ativo", "VIP"]),
)


class CustomersPage(RecordPage):
    collection = "clientes"
    columns = (("nome", "Nome"), ("email", "Email"), ("telefone", "Telefone"),
               ("aniversario", "Aniversário"), ("status", "Status"))

    def __init__(self, loop: BackgroundLoop, bridge: CoreBridge,
                 customers: CustomerService, copywriter: Copywriter) -> None:
        super().__init__("Clientes", "Gestão de clientes", loop, bridge)
        self.customers = customers
        self.copywriter = copywriter
        self.add_action("+ Novo", self.add)
        self.add_action("Editar", self.edit)
        self.add_action("Excluir", self.delete)
        self.add_action("🎂 Mensagem de aniversário", self.birthday_message)
        self.actions.addStretch(1)

    def _open_form(self, title: str, record: Optional[Record] = None) -> None:
        dlg = FormDialog(title, CUSTOMER_FIELDS, record, self)
        if dlg.exec() != QDialog.DialogCode.Accepted:
            return
        form = dlg.values()
        if record is not None:
            form = {**record, **form}
        self.run(self.customers.save(form), "salvar o cliente")

    def add(self) -> None:
        self._open_form("Novo Cliente")

    def edit(self) -> None:
        record = self.selected()
        if record is not None:
            self._open_form("Editar Cliente", record)

    def delete(self) -> None:
        record = self.selected()
        if record is not None and self.confirm(f"Excluir o cliente {record.get('nome')}?"):
            self.run(self.customers.delete(record["id"]), "excluir o cliente")

    def birthday_message(self) -> None:
        record = self.selected()
        if record is None:
            return
        nome = record.get("nome", "")
        self.run(
            self.copywriter.birthday_message(record),
            "gerar a mensagem",
            lambda text: QMessageBox.information(self, f"Mensagem para {nome}", text),
        )


PRODUCT_FIELDS = (
    ("nome", "Nome", None),
    ("categoria", "Categoria", ["Delivery", "Festa"]),
    ("preco", "Preço", None),
    ("custo", "Custo", None),
    ("estoque", "Estoque", None),
    ("tempoPreparo", "Tempo de preparo", None),
    ("status", "Status", ["Ativo", "Inativo"]),
    ("descricao", "Descrição", None),
)


class ProductsPage(RecordPage):
    collection = "produtos"
    columns = (("nome", "Nome"), ("categoria", "Categoria"), ("preco", "Preço"),
               ("estoque", "Estoque"), ("status", "Status"))

    def __init__(self, loop: BackgroundLoop, bridge: CoreBridge, products: ProductService,
                 copywriter: Copywriter, auth: AuthService) -> None:
        super().__init__("Produtos", "Catálogo da doceria", loop, bridge)
        self.products = products
        self.copywriter = copywriter
        self.auth = auth
        self.add_action("+ Novo", self.add)
        self.add_action("Editar", self.edit)
        self.add_action("Excluir", self.delete)
        self.actions.addStretch(1)

    def cell(self, record: Record, key: str) -> str:
        if key == "preco":
            try:
                return format_price_br(float(record.get("preco") or 0))
            except (TypeError, ValueError):
                return ""
        return super().cell(record, key)

    def _open_form(self, title: str, record: Optional[Record] = None) -> None:
        dlg = FormDialog(title, PRODUCT_FIELDS, record, self)
        image: Dict[str, Any] = {}

        lbl_image = QLabel("Sem imagem nova")

        def choose_image() -> None:
            path, _ = QFileDialog.getOpenFileName(dlg, "Imagem do produto", "", "Imagens (*.png *.jpg *.jpeg *.webp)")
            if path:
                image["path"] = path
                lbl_image.setText(os.path.basename(path))

        def describe() -> None:
            form = dlg.values()
            if not form["nome"] or not form["categoria"]:
                QMessageBox.warning(dlg, "Descrição", "Preencha o nome e a categoria do produto primeiro.")
                return
            coro = self.copywriter.product_description(form["nome"], form["categoria"])
            self.run(coro, "gerar a descrição", lambda text: dlg.set_value("descricao", text))

        btn_image = QPushButton("Escolher imagem")
        btn_image.clicked.connect(choose_image)
        btn_describe = QPushButton("✨ Gerar descrição")
        btn_describe.clicked.connect(describe)
        dlg.extra.addWidget(btn_image)
        dlg.extra.addWidget(lbl_image, 1)
        dlg.extra.addWidget(btn_describe)

        if dlg.exec() != QDialog.DialogCode.Accepted:
            return
        form = dlg.values()
        if record is not None:
            form = {**record, **form}
        data: Optional[bytes] = None
        filename = ""
        if "path" in image:
            try:
                with open(image["path"], "rb") as f:
                    data = f.read()
            except OSError as e:
                log_error("Erro ao ler imagem do produto", e)
                QMessageBox.warning(self, "Imagem", f"Não foi possível ler a imagem: {e}")
                return
            filename = os.path.basename(image["path"])
        id_token = self.auth.session.identity.id_token if self.auth.session else ""
        self.run(self.products.save(form, data, filename, id_token), "salvar o produto")

    def add(self) -> None:
        self._open_form("Novo Produto")

    def edit(self) -> None:
        record = self.selected()
        if record is not None:
            self._open_form("Editar Produto", record)

    def delete(self) -> None:
        record = self.selected()
        if record is not None and self.confirm(f"Excluir o produto {record.get('nome')}?"):
            self.run(self.products.delete(record["id"]), "excluir o produto")


class SettingsPage(BasePage):
    """Tema, endereço da API e intervalo de atualização, salvos no config.yaml."""

    def __init__(self, apply_theme: Callable[[str], None]) -> None:
        super().__init__("Configurações", "Preferências do sistema")
        self.apply_theme = apply_theme
        form = QFormLayout(self.body)
        self.theme_combo = QComboBox()
        self.theme_combo.addItems(list(THEMES))
        self.api_edit = QLineEdit()
        self.poll_edit = QLineEdit()
        self.gemini_edit = QLineEdit()
        self.gemini_edit.setEchoMode(QLineEdit.EchoMode.Password)
        form.addRow("Tema:", self.theme_combo)
        form.addRow("URL da API:", self.api_edit)
        form.addRow("Atualizar a cada (s):", self.poll_edit)
        form.addRow("Chave Gemini:", self.gemini_edit)
        hint = QLabel("URL, intervalo e chave valem a partir da próxima abertura.")
        hint.setObjectName("subtitle")
        form.addRow(hint)
        btn_save = QPushButton("Salvar")
        btn_save.clicked.connect(self.save)
        form.addRow(btn_save)
        self.v.addStretch(1)
        self.load()

    def load(self) -> None:
        try:
            config = load_config()
        except ConfigError as e:
            QMessageBox.warning(self, "Configuração", str(e))
            config = {}
        self.theme_combo.setCurrentText(str(config.get("theme", "light")))
        self.api_edit.setText(str(config.get("api_base_url", "")))
        self.poll_edit.setText(str(config.get("poll_interval", "")))
        gemini = config.get("gemini") if isinstance(config.get("gemini"), dict) else {}
        self.gemini_edit.setText(str(gemini.get("api_key", "")))

    def save(self) -> None:
        try:
            config = load_config()
            update_config(
                config, self.theme_combo.currentText(), self.api_edit.text(),
                self.poll_edit.text(), self.gemini_edit.text(),
            )
            save_config(config)
        except (ConfigError, ValueError, OSError) as e:
            QMessageBox.warning(self, "Configuração", str(e))
            return
        log_event(f"Configurações salvas (tema: {config['theme']})")
        self.apply_theme(config["theme"])
        QMessageBox.information(self, "Configuração", "Configurações salvas.")

