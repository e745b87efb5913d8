# theme.py
# Folhas de estilo (QSS) dos temas claro e escuro

from doceria.config import THEMES


def qss_light() -> str:
    return """
QMainWindow, QWidget { background: #fdf2f8; color: #500724; font-family: 'Segoe UI', Arial, sans-serif; }
QListWidget#Sidebar { background: #fff; border: 1px solid #f9a8d4; border-radius: 10px; padding: 6px; }
QListWidget#Sidebar::item { padding: 8px; border-radius: 6px; }
QListWidget#Sidebar::item:selected { background: #db2777; color: white; }
QTableWidget { background: #fff; alternate-background-color: #fce7f3; gridline-color: #fbcfe8; }
QLineEdit, QComboBox, QTextEdit { background: #fff; border: 1px solid #f9a8d4; border-radius: 6px; padding: 4px 8px; }
QPushButton { background: #db2777; color: white; border: none; border-radius: 8px; padding: 6px 14px; }
QPushButton:hover { background: #be185d; }
QLabel#subtitle { color: #9d174d; }
"""


def qss_dark() -> str:
    return """
QMainWindow, QWidget { background: #1f1720; color: #fce7f3; font-family: 'Segoe UI', Arial, sans-serif; }
QListWidget#Sidebar { background: #2a1f2c; border: 1px solid #831843; border-radius: 10px; padding: 6px; }
QListWidget#Sidebar::item { padding: 8px; border-radius: 6px; }
QListWidget#Sidebar::item:selected { background: #be185d; color: white; }
QTableWidget { background: #2a1f2c; alternate-background-color: #33263a; gridline-color: #4a2a40; }
QLineEdit, QComboBox, QTextEdit { background: #2a1f2c; color: #fce7f3; border: 1px solid #831843; border-radius: 6px; padding: 4px 8px; }
QPushButton { background: #be185d; color: white; border: none; border-radius: 8px; padding: 6px 14px; }
QPushButton:hover { background: #9d174d; }
QLabel#subtitle { color: #f9a8d4; }
"""


def stylesheet_for(theme: str) -> str:
    """QSS do tema; nomes desconhecidos usam o tema claro"""
    if theme == 'dark' and theme in THEMES:
        return qss_dark()
    return qss_light()
