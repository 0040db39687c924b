"""
Get-apply-set concorrente sobre uma chave de um cache chave-valor.

Demonstra que o laço de compare-and-swap não perde atualizações sob
contenção, em contraste com a leitura-escrita ingênua.

Componentes:
- sequencer: próximo valor determinístico da sequência
- strategies: NonAtomicStrategy e AtomicStrategy
- driver: workers concorrentes, cada um com sua conexão
- verifier: oráculo e comparação esperado x observado
"""

__version__ = "1.0.0"
