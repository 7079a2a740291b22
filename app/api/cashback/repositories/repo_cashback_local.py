from datetime import datetime
from typing import List, Optional

from app.api.cashback.contracts.cashback_contract import ICashbackRepository
from app.api.cashback.schemas.schema_cashback import CashbackTransacaoOut, StatusTransacaoCashbackEnum
from app.api.cashback.services.service_cashback import saldo_aprovado, saldo_insuficiente
from app.core.exceptions import NotFoundError
from app.database.local_store import LocalStore
from app.database.repository_utils import para_registro
from app.utils.timeout import com_timeout


def _do_telefone(registros, telefone: str, desde: Optional[datetime] = None) -> List[CashbackTransacaoOut]:
    transacoes = [CashbackTransacaoOut.model_validate(t) for t in registros if t["telefone"] == telefone]
    if desde is not None:
        transacoes = [t for t in transacoes if t.created_at >= desde]
    return sorted(transacoes, key=lambda t: t.created_at)


class CashbackRepositoryLocal(ICashbackRepository):

    def __init__(self, store: LocalStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    async def inserir(self, transacao: CashbackTransacaoOut) -> CashbackTransacaoOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                tabelas["cashback_transacoes"][transacao.id] = para_registro(transacao)
            return transacao

        return await com_timeout(_op(), "registrar transação de cashback", self.timeout)

    async def registrar_resgate(self, transacao: CashbackTransacaoOut, desde: datetime) -> CashbackTransacaoOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                registros = tabelas["cashback_transacoes"]
                saldo = saldo_aprovado(_do_telefone(registros.values(), transacao.telefone, desde))
                if -transacao.valor_cashback > saldo:
                    raise saldo_insuficiente(saldo, -transacao.valor_cashback)
                registros[transacao.id] = para_registro(transacao)
            return transacao

        return await com_timeout(_op(), "registrar resgate de cashback", self.timeout)

    async def cancelar(self, transacao_id: str) -> None:
        async def _op():
            async with self.store.transacao() as tabelas:
                registro = tabelas["cashback_transacoes"].get(transacao_id)
                if registro is None:
                    raise NotFoundError(f"Transação de cashback {transacao_id} não encontrada.")
                registro["status"] = StatusTransacaoCashbackEnum.CANCELADO.value

        await com_timeout(_op(), "estornar transação de cashback", self.timeout)

    async def listar_por_telefone(self, telefone: str, desde: Optional[datetime] = None) -> List[CashbackTransacaoOut]:
        return _do_telefone(self.store.tabela("cashback_transacoes").values(), telefone, desde)
