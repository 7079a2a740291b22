"""
Barramento de tempo real das vendas.

Recebe ``EventoAlteracao`` de duas fontes independentes (fluxo push dos
repositórios e polling de fallback) e garante, na fronteira de entrada:

- deduplicação pelo último payload conhecido de cada entidade;
- descarte de eventos mais antigos que o estado já conhecido;
- processamento serial por entidade, na ordem de chegada;
- para pedido novo: merge na coleção, alerta (se pendente) e só então os
  assinantes.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel

from app.api.notifications.core.alertas import ControladorAlertas
from app.api.notifications.core.eventos import (
    EventoAlteracao,
    TipoEntidadeEnum,
    TipoEventoEnum,
    chamar_callback,
)
from app.api.shared.schemas.schema_shared_enums import PedidoStatusEnum
from app.utils.prometheus_metrics import registrar_evento_realtime

logger = logging.getLogger(__name__)

CallbackEvento = Callable[[EventoAlteracao], Optional[Awaitable[None]]]


class Assinatura:
    def __init__(self, barramento: "RealtimeEventBus", tipo: TipoEntidadeEnum, registro: tuple):
        self._barramento = barramento
        self._tipo = tipo
        self._registro = registro
        self.ativa = True

    def cancelar(self) -> None:
        if not self.ativa:
            return
        self.ativa = False
        assinantes = self._barramento._assinantes[self._tipo]
        if self._registro in assinantes:
            assinantes.remove(self._registro)


class RealtimeEventBus:
    """Sistema de eventos local para as coleções de pedidos, mesas e vendas"""

    def __init__(self, alertas: Optional[ControladorAlertas] = None):
        self.alertas = alertas or ControladorAlertas()
        self._colecoes: Dict[TipoEntidadeEnum, Dict[str, BaseModel]] = defaultdict(dict)
        self._ultimo_payload: Dict[tuple, Dict[str, Any]] = {}
        self._assinantes: Dict[TipoEntidadeEnum, List[tuple]] = defaultdict(list)
        # chave -> (trava, eventos esperando ou em processamento)
        self._travas: Dict[tuple, Tuple[asyncio.Lock, int]] = {}

    # ------------------------------------------------------------------
    # Assinaturas
    # ------------------------------------------------------------------
    def assinar(
        self,
        tipo: TipoEntidadeEnum,
        callback: CallbackEvento,
        eventos: Optional[Iterable[TipoEventoEnum]] = None,
    ) -> Assinatura:
        registro = (callback, frozenset(eventos) if eventos else None)
        self._assinantes[tipo].append(registro)
        return Assinatura(self, tipo, registro)

    def ao_novo_pedido(self, callback: CallbackEvento) -> Assinatura:
        return self.assinar(TipoEntidadeEnum.PEDIDO, callback, [TipoEventoEnum.INSERT])

    # ------------------------------------------------------------------
    # Coleções
    # ------------------------------------------------------------------
    def semear(self, tipo: TipoEntidadeEnum, itens: Iterable[BaseModel]) -> None:
        """Substitui a coleção pelo resultado de uma carga completa."""
        colecao = {item.id: item for item in itens}
        self._colecoes[tipo] = colecao
        for chave in [k for k in self._ultimo_payload if k[0] == tipo]:
            del self._ultimo_payload[chave]
        for entidade_id, item in colecao.items():
            self._ultimo_payload[(tipo, entidade_id)] = item.model_dump(mode="json")

    def obter(self, tipo: TipoEntidadeEnum, entidade_id: str) -> Optional[BaseModel]:
        return self._colecoes[tipo].get(entidade_id)

    def listar(self, tipo: TipoEntidadeEnum) -> List[BaseModel]:
        return list(self._colecoes[tipo].values())

    # ------------------------------------------------------------------
    # Entrada
    # ------------------------------------------------------------------
    def _reservar(self, chave: tuple) -> asyncio.Lock:
        trava, usos = self._travas.get(chave, (None, 0))
        if trava is None:
            trava = asyncio.Lock()
        self._travas[chave] = (trava, usos + 1)
        return trava

    def _liberar(self, chave: tuple) -> None:
        trava, usos = self._travas[chave]
        if usos <= 1:
            del self._travas[chave]
        else:
            self._travas[chave] = (trava, usos - 1)

    async def receber(self, evento: EventoAlteracao) -> bool:
        """Processa um evento; retorna False quando ele é descartado."""
        trava = self._reservar(evento.chave)
        try:
            async with trava:
                return await self._processar(evento)
        finally:
            self._liberar(evento.chave)

    async def _processar(self, evento: EventoAlteracao) -> bool:
        tipo = evento.tipo_entidade
        payload = evento.payload.model_dump(mode="json")
        conhecido = self._colecoes[tipo].get(evento.id)

        if self._ultimo_payload.get(evento.chave) == payload:
            registrar_evento_realtime(tipo.value, "duplicado")
            return False

        if conhecido is not None and _mais_antigo(evento.payload, conhecido):
            logger.info(f"[Realtime] Evento antigo descartado: {tipo.value}:{evento.id}")
            registrar_evento_realtime(tipo.value, "antigo")
            return False

        # Id desconhecido é sempre inserção, venha de onde vier
        tipo_evento = TipoEventoEnum.UPDATE if conhecido is not None else TipoEventoEnum.INSERT
        normalizado = EventoAlteracao(tipo, evento.id, evento.payload, tipo_evento)

        self._colecoes[tipo][evento.id] = evento.payload
        self._ultimo_payload[evento.chave] = payload

        if tipo == TipoEntidadeEnum.PEDIDO:
            self._atualizar_alerta(conhecido, evento.payload, tipo_evento)

        registrar_evento_realtime(tipo.value, tipo_evento.value)
        await self._notificar(normalizado)
        return True

    def _atualizar_alerta(self, anterior: Optional[BaseModel], atual: BaseModel, tipo_evento: TipoEventoEnum) -> None:
        pendente = getattr(atual, "status", None) == PedidoStatusEnum.PENDENTE
        if tipo_evento == TipoEventoEnum.INSERT:
            if pendente:
                self.alertas.iniciar(atual.id)
            return
        era_pendente = getattr(anterior, "status", None) == PedidoStatusEnum.PENDENTE
        if era_pendente and not pendente:
            self.alertas.cancelar(atual.id)

    async def _notificar(self, evento: EventoAlteracao) -> None:
        for callback, eventos in list(self._assinantes[evento.tipo_entidade]):
            if eventos is not None and evento.tipo_evento not in eventos:
                continue
            try:
                await chamar_callback(callback, evento)
            except Exception as e:
                logger.error(f"[Realtime] Erro no assinante de {evento.tipo_entidade.value}:{evento.id}: {e}")

    def encerrar(self) -> None:
        self.alertas.encerrar()


def _mais_antigo(novo: BaseModel, conhecido: BaseModel) -> bool:
    # Payload diferente com versão igual ou menor veio de uma escrita anterior
    novo_versao = getattr(novo, "versao", None)
    conhecido_versao = getattr(conhecido, "versao", None)
    if novo_versao is not None and conhecido_versao is not None:
        return novo_versao <= conhecido_versao
    novo_em = getattr(novo, "updated_at", None)
    conhecido_em = getattr(conhecido, "updated_at", None)
    if novo_em is None or conhecido_em is None:
        return False
    return novo_em < conhecido_em
