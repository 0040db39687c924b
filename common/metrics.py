"""
Configuração de métricas Prometheus para o cache e para o driver.
"""
from prometheus_client import Counter


# Métricas para o cache versionado
store_metrics = {
    "operations": Counter(
        "gas_store_operations_total",
        "Número de operações no cache",
        ["operation", "result"]
    ),
    "evictions": Counter(
        "gas_store_evictions_total",
        "Número de itens removidos por expiração"
    )
}


# Métricas para as estratégias de atualização
strategy_metrics = {
    "updates": Counter(
        "gas_strategy_updates_total",
        "Número de atualizações concluídas",
        ["strategy"]
    ),
    "conflicts": Counter(
        "gas_strategy_conflicts_total",
        "Número de tentativas descartadas pelo laço de CAS",
        ["kind"]
    )
}


# Métricas para o driver concorrente
driver_metrics = {
    "runs": Counter(
        "gas_driver_runs_total",
        "Número de execuções do driver",
        ["strategy", "status"]
    ),
    "worker_failures": Counter(
        "gas_driver_worker_failures_total",
        "Número de workers que terminaram com erro",
        ["error"]
    )
}
