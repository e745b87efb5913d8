# login_dialog.py
# Diálogo de login e registro por email

import json
from pathlib import Path
from typing import Callable, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QCheckBox, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QPushButton, QVBoxLayout,
)

# (email, senha, registrando?, concluído) -> None; `concluído` recebe a
# mensagem de erro ou None, na thread da UI
Done = Callable[[Optional[str]], None]
Authenticate = Callable[[str, str, bool, Done], None]


class LoginDialog(QDialog):
    def __init__(self, authenticate: Authenticate, parent=None):
        super().__init__(parent)
        self.authenticate = authenticate
        self.registering = False
        self.setWindowTitle("Login")
        self.setMinimumWidth(340)
        self.setStyleSheet("""
            QDialog {
                background: #fdf2f8;
                border-radius: 16px;
            }
            QLabel {
                color: #831843;
                font-family: 'Segoe UI', Arial, sans-serif;
            }
            QLineEdit {
                background: #fff;
                color: #500724;
                border: 1.5px solid #f9a8d4;
                border-radius: 8px;
                padding: 7px 12px;
                font-size: 15px;
            }
            QLineEdit:focus {
                border: 1.5px solid #db2777;
            }
            QLabel#error {
                color: #b91c1c;
                font-weight: bold;
            }
            QPushButton#toggle {
                background: transparent;
                border: none;
                color: #db2777;
                text-decoration: underline;
            }
        """)
        vbox = QVBoxLayout(self)
        vbox.setContentsMargins(32, 24, 32, 24)
        vbox.setSpacing(10)

        self.title = QLabel()
        self.title.setAlignment(Qt.AlignmentFlag.AlignHCenter)
        self.title.setStyleSheet("font-size: 18px; margin-bottom: 8px;")
        vbox.addWidget(self.title)

        form = QFormLayout()
        form.setSpacing(16)
        self.email = QLineEdit()
        self.email.setPlaceholderText("seu@email.com")
        self.password = QLineEdit()
        self.password.setEchoMode(QLineEdit.EchoMode.Password)
        self.password.setPlaceholderText("••••••••")
        form.addRow("Email:", self.email)
        form.addRow("Senha:", self.password)
        vbox.addLayout(form)

        self.remember_checkbox = QCheckBox("Lembrar email")
        vbox.addWidget(self.remember_checkbox)

        self.error_label = QLabel("")
        self.error_label.setObjectName("error")
        self.error_label.setWordWrap(True)
        self.error_label.hide()
        vbox.addWidget(self.error_label)

        self.buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel)
        self.buttons.accepted.connect(self._on_accept)
        self.buttons.rejected.connect(self.reject)
        vbox.addWidget(self.buttons)

        self.toggle = QPushButton()
        self.toggle.setObjectName("toggle")
        self.toggle.clicked.connect(self._toggle_mode)
        vbox.addWidget(self.toggle)

        self._load_saved_email()
        self._apply_mode()

    def _apply_mode(self):
        ok = self.buttons.button(QDialogButtonBox.StandardButton.Ok)
        if self.registering:
            self.title.setText("<b>Registrar Nova Conta</b>")
            ok.setText("Registrar")
            self.toggle.setText("Já tem uma conta? Faça login")
        else:
            self.title.setText("<b>Login</b>")
            ok.setText("Entrar")
            self.toggle.setText("Não tem uma conta? Registre-se")

    def _toggle_mode(self):
        self.registering = not self.registering
        self.error_label.hide()
        self._apply_mode()

    def get_values(self):
        return self.email.text().strip(), self.password.text()

    def _get_credentials_file(self) -> Path:
        """Retorna o caminho para o arquivo com o email salvo"""
        config_dir = Path.home() / ".doceria"
        config_dir.mkdir(exist_ok=True)
        return config_dir / "credentials.json"

    def _load_saved_email(self):
        creds_file = self._get_credentials_file()
        if not creds_file.exists():
            return
        try:
            with open(creds_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError):
            return
        email = data.get('email', '') if isinstance(data, dict) else ''
        if email:
            self.email.setText(email)
            self.remember_checkbox.setChecked(True)
            self.password.setFocus()

    def _save_email(self):
        creds_file = self._get_credentials_file()
        if self.remember_checkbox.isChecked():
            with open(creds_file, 'w', encoding='utf-8') as f:
                json.dump({'email': self.email.text().strip()}, f)
        elif creds_file.exists():
            creds_file.unlink()

    def _on_accept(self):
        """Handler quando usuário clica em Entrar/Registrar"""
        email, password = self.get_values()
        if not email or not password:
            self._show_error("Informe email e senha.")
            return
        self.buttons.setEnabled(False)
        self.toggle.setEnabled(False)
        self.error_label.setText("Conectando...")
        self.error_label.show()
        self.authenticate(email, password, self.registering, self._on_finished)

    def _on_finished(self, error: Optional[str]):
        self.buttons.setEnabled(True)
        self.toggle.setEnabled(True)
        if error:
            self._show_error(error)
            return
        self.error_label.hide()
        self._save_email()
        self.accept()

    def _show_error(self, message: str):
        self.error_label.setText(message)
        self.error_label.show()
