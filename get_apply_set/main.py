import argparse
import logging
import sys
from typing import List, Optional

from common.exceptions import StoreError
from common.logging import setup_logging
from common.utils import get_debug_mode
from get_apply_set.config import REQUEST_TIMEOUT, load_config
from get_apply_set.driver import run_concurrent
from get_apply_set.sequencer import next_value
from get_apply_set.strategies import STRATEGIES, AtomicStrategy, get_strategy
from get_apply_set.verifier import verify
from store.client import connect

# Configuração do logger
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_MISMATCH = 3


def build_parser() -> argparse.ArgumentParser:
    methods = "|".join(sorted(STRATEGIES))
    parser = argparse.ArgumentParser(description="Get-apply-set concorrente sobre uma chave do cache")
    parser.add_argument("--host", type=str, help="Host do cache")
    parser.add_argument("--port", type=int, help="Porta do cache")
    parser.add_argument("--locator", type=str, help="Localizador completo (http://host:port ou memory://nome)")
    parser.add_argument("--key", type=str, help="Chave compartilhada")
    parser.add_argument("--iter", dest="iterations", type=int, help="Iterações por worker")
    parser.add_argument("--method", type=str, choices=sorted(STRATEGIES), metavar=methods, help="Estratégia")
    parser.add_argument("--concurrency", type=int, help="Número de workers (padrão: 2)")
    parser.add_argument("--expiration", type=int, help="Expiração das escritas em segundos")
    parser.add_argument("--max-attempts", type=int, help="Limite de tentativas do laço de CAS")
    parser.add_argument("--config", type=str, help="Arquivo YAML de configuração")
    parser.add_argument("--debug", action="store_true", default=None, help="Habilita logs de debug")
    parser.add_argument("--strict", action="store_true", help="Sai com código 3 se esperado != observado")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Função principal: executa os workers, verifica e imprime uma linha de relatório.

    Returns:
        Código de saída do processo.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging("get_apply_set", args.debug if args.debug is not None else get_debug_mode())

    try:
        config = load_config(
            args.config,
            host=args.host,
            port=args.port,
            locator=args.locator,
            key=args.key,
            iterations=args.iterations,
            method=args.method,
            concurrency=args.concurrency,
            expiration=args.expiration,
            max_attempts=args.max_attempts
        )
    except (OSError, ValueError) as e:
        logger.error(f"Configuração inválida: {e}")
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    if config.method not in STRATEGIES:
        logger.error(f"Estratégia desconhecida: {config.method}")
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    strategy_kwargs = {"ttl": config.expiration}
    if STRATEGIES[config.method] is AtomicStrategy:
        strategy_kwargs["max_attempts"] = config.max_attempts
    strategy = get_strategy(config.method, **strategy_kwargs)

    locator = config.store_locator

    def connector(target: str):
        return connect(target, timeout=REQUEST_TIMEOUT)

    try:
        run_concurrent(config.concurrency, strategy, locator, config.key, config.iterations,
                       next_value, connector=connector)
        with connector(locator) as conn:
            verification = verify(conn, config.key, config.concurrency, config.iterations,
                                  next_value, strategy=strategy.name)
    except StoreError as e:
        logger.error(f"Execução abortada: {e}")
        return EXIT_FAILURE

    if verification.actual is None and verification.expected is not None:
        logger.error(f"Chave {config.key} ausente após a execução")
        return EXIT_FAILURE

    print(verification.report())

    if args.strict and not verification.matches:
        return EXIT_MISMATCH
    return EXIT_OK


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
