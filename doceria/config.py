# config.py
# Configurações globais e leitura de YAML

from dataclasses import dataclass
from typing import Dict, Any, Optional
import yaml
import os
import sys

from doceria.exceptions import ConfigError

DEFAULT_API_BASE_URL = 'https://doceria-crm-backend.onrender.com/api'
DEFAULT_GEMINI_MODEL = 'gemini-2.5-flash-preview-05-20'
THEMES = ('light', 'dark')


def get_app_data_directory() -> str:
    """
    Retorna o diretório de dados da aplicação.
    Funciona tanto em desenvolvimento quanto em executáveis PyInstaller.
    """
    if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
        app_data_dir = os.path.join(os.path.expanduser("~"), "AppData", "Local", "Doceria")
    else:
        app_data_dir = os.path.join(os.path.expanduser("~"), ".doceria")

    os.makedirs(app_data_dir, exist_ok=True)
    return app_data_dir


def get_config_path() -> str:
    """Caminho do config.yaml; DOCERIA_CONFIG tem prioridade."""
    override = os.getenv('DOCERIA_CONFIG')
    if override:
        return override
    return os.path.join(get_app_data_directory(), 'config.yaml')


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Carrega as configurações do arquivo YAML.

    Returns:
        Dict[str, Any]: Dicionário com as configurações
    """
    path = path or get_config_path()
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Arquivo de configuração inválido ({path}): {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Arquivo de configuração inválido ({path}): esperado um mapeamento")
    return data


def save_config(data: Dict[str, Any], path: Optional[str] = None) -> None:
    """
    Salva as configurações no arquivo YAML.

    Args:
        data: Dicionário com as configurações para salvar
    """
    path = path or get_config_path()
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, allow_unicode=True)


@dataclass(frozen=True)
class AppSettings:
    api_base_url: str = DEFAULT_API_BASE_URL
    poll_interval: float = 30.0
    request_timeout: float = 20.0
    alarm_period: float = 1.0
    alarm_pulse_ms: int = 200
    alarm_frequency: int = 880
    firebase_api_key: str = ""
    firebase_project_id: str = ""
    firebase_storage_bucket: str = ""
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    theme: str = "light"


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Seção '{name}' deve ser um mapeamento")
    return value


def get_settings(path: Optional[str] = None) -> AppSettings:
    """
    Monta as configurações da aplicação a partir do YAML, com valores padrão.

    Exemplo de config.yaml:

        api_base_url: https://doceria-crm-backend.onrender.com/api
        poll_interval: 30
        alarm: {period: 1.0, pulse_ms: 200, frequency: 880}
        firebase: {api_key: ..., project_id: ..., storage_bucket: ...}
        gemini: {api_key: ..., model: ...}
        theme: light
    """
    config = load_config(path)
    alarm = _section(config, 'alarm')
    firebase = _section(config, 'firebase')
    gemini = _section(config, 'gemini')
    defaults = AppSettings()

    try:
        settings = AppSettings(
            api_base_url=str(config.get('api_base_url') or defaults.api_base_url).rstrip('/'),
            poll_interval=float(config.get('poll_interval', defaults.poll_interval)),
            request_timeout=float(config.get('request_timeout', defaults.request_timeout)),
            alarm_period=float(alarm.get('period', defaults.alarm_period)),
            alarm_pulse_ms=int(alarm.get('pulse_ms', defaults.alarm_pulse_ms)),
            alarm_frequency=int(alarm.get('frequency', defaults.alarm_frequency)),
            firebase_api_key=str(firebase.get('api_key', '')),
            firebase_project_id=str(firebase.get('project_id', '')),
            firebase_storage_bucket=str(firebase.get('storage_bucket', '')),
            gemini_api_key=str(gemini.get('api_key', '')),
            gemini_model=str(gemini.get('model') or defaults.gemini_model),
            theme=str(config.get('theme', defaults.theme)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Valor de configuração inválido: {e}") from e

    if settings.poll_interval <= 0:
        raise ConfigError("poll_interval deve ser positivo")
    if settings.alarm_period <= 0:
        raise ConfigError("alarm.period deve ser positivo")
    return settings


def update_config(config: Dict[str, Any], theme: str, api_url: str = "", poll: str = "",
                  gemini_key: str = "") -> Dict[str, Any]:
    """
    Aplica os campos da tela de configurações sobre o dicionário carregado.

    Campos vazios mantêm o valor atual. Levanta ValueError para intervalo
    inválido, sem alterar nada.
    """
    interval = None
    if poll.strip():
        try:
            interval = float(poll.replace(',', '.'))
        except ValueError:
            raise ValueError("Intervalo de atualização inválido.") from None
        if interval <= 0:
            raise ValueError("Intervalo de atualização deve ser positivo.")

    config['theme'] = theme if theme in THEMES else 'light'
    if api_url.strip():
        config['api_base_url'] = api_url.strip().rstrip('/')
    if interval is not None:
        config['poll_interval'] = interval
    if gemini_key.strip():
        gemini = config.get('gemini')
        gemini = dict(gemini) if isinstance(gemini, dict) else {}
        gemini['api_key'] = gemini_key.strip()
        config['gemini'] = gemini
    return config
