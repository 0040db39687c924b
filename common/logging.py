"""
File: common/logging.py
Sistema de logging unificado para o driver e para o servidor de cache.
Suporta níveis de debug configuráveis e saída estruturada em JSON.
"""
import os
import sys
import json
import logging
import datetime
from typing import Optional
from logging.handlers import RotatingFileHandler

# Configuração com suporte a múltiplos níveis de debug
DEBUG = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")
DEBUG_LEVEL = os.getenv("DEBUG_LEVEL", "basic").lower()  # Níveis: basic, advanced, trace
LOG_DIR = os.getenv("LOG_DIR") or None

# Níveis de log
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "IMPORTANT": 25,  # Nível customizado entre INFO e WARNING
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

# Registra o nível IMPORTANT
logging.addLevelName(LEVELS["IMPORTANT"], "IMPORTANT")


def _important(self, message, *args, **kwargs):
    if self.isEnabledFor(LEVELS["IMPORTANT"]):
        self._log(LEVELS["IMPORTANT"], message, args, **kwargs)


logging.Logger.important = _important


def setup_logging(component_name: str, debug: Optional[bool] = None, debug_level: Optional[str] = None,
                  log_dir: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Configura o sistema de logging para um componente.

    Args:
        component_name: Nome do componente
        debug: Se True, habilita logs de DEBUG (sobrescreve variável de ambiente)
        debug_level: Nível de debug (basic, advanced, trace) (sobrescreve variável de ambiente)
        log_dir: Diretório para salvar logs (sobrescreve variável de ambiente).
            Sem diretório, apenas o console é usado.
        stream: Stream do console (padrão: stderr, para não misturar com o relatório em stdout)

    Returns:
        logging.Logger: Logger do componente
    """
    # Usa valores de parâmetros ou fallback para variáveis de ambiente
    debug_enabled = debug if debug is not None else DEBUG
    debug_level_value = debug_level if debug_level is not None else DEBUG_LEVEL
    logs_directory = log_dir if log_dir is not None else LOG_DIR
    level = logging.DEBUG if debug_enabled else logging.INFO

    # Configura logger raiz
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove handlers existentes
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    detailed = debug_enabled and debug_level_value in ("advanced", "trace")

    # Adiciona handler para console
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(JsonFormatter(component_name, detailed=detailed))
    root_logger.addHandler(console_handler)

    if logs_directory:
        os.makedirs(logs_directory, exist_ok=True)
        all_log_file = os.path.join(logs_directory, f"{component_name}_all.log")
        file_handler = RotatingFileHandler(
            all_log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter(component_name, detailed=True))  # Sempre detalhado em arquivo
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(component_name)
    logger.debug(f"Logging inicializado para {component_name}. Debug: {debug_enabled}, Nível: {debug_level_value}")

    if detailed:
        logger.debug(f"Configuração detalhada de logging: dir={logs_directory}")

    return logger


class JsonFormatter(logging.Formatter):
    """
    Formatador que converte logs para formato JSON.
    """

    def __init__(self, component: str, detailed: bool = False):
        """
        Inicializa o formatador.

        Args:
            component: Nome do componente
            detailed: Se True, inclui campos adicionais no log
        """
        super().__init__()
        self.component = component
        self.detailed = detailed

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": int(record.created * 1000),  # milissegundos
            "datetime": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage()
        }

        # Campos adicionais para logs detalhados
        if self.detailed:
            log_data.update({
                "module": record.module,
                "function": record.funcName,
                "lineno": record.lineno,
                "thread": record.threadName,
                "process": record.process
            })

        # Adiciona contexto se disponível
        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        # Adiciona informações de exceção se disponível
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(log_data)
