# logger.py
# Logger da aplicação

import logging
import os
import sys
from datetime import datetime
from typing import Optional

LOGGER_NAME = "doceria"
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'

logger = logging.getLogger(LOGGER_NAME)


def get_log_dir() -> str:
    """Retorna o diretório de logs do usuário"""
    if sys.platform == 'win32':
        app_data = os.getenv('LOCALAPPDATA', os.getenv('APPDATA', ''))
        if app_data:
            log_dir = os.path.join(app_data, 'Doceria', 'logs')
        else:
            log_dir = os.path.join(os.path.expanduser('~'), 'Doceria', 'logs')
    else:
        # Linux/Mac
        log_dir = os.path.expanduser('~/.doceria/logs')

    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def setup_logging(level: int = logging.INFO, log_dir: Optional[str] = None) -> str:
    """
    Configura arquivo de log diário e saída no console.

    Returns:
        str: Caminho do arquivo de log em uso
    """
    log_dir = log_dir or get_log_dir()
    log_path = os.path.join(log_dir, f'doceria_{datetime.now().strftime("%Y%m%d")}.log')

    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, '%Y-%m-%d %H:%M:%S'))
    logger.addHandler(file_handler)

    # Adiciona também saída no console para debug
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, '%H:%M:%S'))
    logger.addHandler(console_handler)

    log_startup(log_path)
    return log_path


def log_event(msg: str):
    """Registra evento informativo"""
    logger.info(msg)


def log_error(msg: str, exc: Optional[BaseException] = None):
    """Registra erro com traceback opcional"""
    if exc:
        logger.error(f"{msg}: {exc}", exc_info=exc)
    else:
        logger.error(msg)


def log_warning(msg: str):
    """Registra aviso"""
    logger.warning(msg)


def log_debug(msg: str):
    """Registra mensagem de debug"""
    logger.debug(msg)


def log_startup(log_path: str):
    """Registra informações de inicialização do sistema"""
    logger.info("=" * 60)
    logger.info("DOCERIA - SISTEMA INICIADO")
    logger.info("=" * 60)
    logger.info(f"Versão Python: {sys.version}")
    logger.info(f"Sistema Operacional: {sys.platform}")
    logger.info(f"Arquivo de log: {log_path}")
    logger.info("=" * 60)
