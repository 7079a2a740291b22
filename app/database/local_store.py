"""
Backend local de persistência: tabelas em memória com snapshot opcional em JSON.

Usado quando o banco não está configurado/acessível. Cada escrita roda sobre
uma cópia das tabelas que só substitui o estado atual se a operação inteira
terminar sem erro (copia-e-troca), então gravações compostas nunca ficam pela
metade.
"""
import asyncio
import copy
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

TABELAS = (
    "pedidos",
    "pedidos_historico",
    "mesas",
    "vendas_mesa",
    "caixas",
    "cashback_transacoes",
    "notificacoes",
)

Tabelas = Dict[str, Dict[str, dict]]


class LocalStore:
    def __init__(self, caminho: Optional[str] = None):
        self.caminho = Path(caminho) if caminho else None
        self._tabelas: Tabelas = {nome: {} for nome in TABELAS}
        self._lock = asyncio.Lock()

    def carregar_snapshot(self) -> None:
        if not self.caminho or not self.caminho.exists():
            return
        with self.caminho.open("r", encoding="utf-8") as fp:
            dados = json.load(fp)
        for nome in TABELAS:
            self._tabelas[nome] = dados.get(nome, {})
        logger.info(f"[LocalStore] Snapshot carregado de {self.caminho}")

    def tabela(self, nome: str) -> Dict[str, dict]:
        """Visão somente leitura do estado confirmado."""
        return self._tabelas[nome]

    @asynccontextmanager
    async def transacao(self):
        async with self._lock:
            copia = copy.deepcopy(self._tabelas)
            yield copia
            if self.caminho:
                await asyncio.to_thread(self._gravar_arquivo, copia)
            self._tabelas = copia

    def _gravar_arquivo(self, dados: Tabelas) -> None:
        self.caminho.parent.mkdir(parents=True, exist_ok=True)
        temporario = self.caminho.with_suffix(self.caminho.suffix + ".tmp")
        with temporario.open("w", encoding="utf-8") as fp:
            json.dump(dados, fp, ensure_ascii=False)
        os.replace(temporario, self.caminho)
