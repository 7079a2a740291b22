from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from app.api.cashback.contracts.cashback_contract import ICashbackContract, ICashbackRepository
from app.api.cashback.schemas.schema_cashback import (
    CashbackTransacaoOut,
    StatusTransacaoCashbackEnum,
    TipoTransacaoCashbackEnum,
)
from app.api.precificacao.services.service_precificacao import ZERO, _dec, calcular_cashback_compra
from app.config.settings import CASHBACK_PERCENTUAL
from app.core.exceptions import ValidationError
from app.database.repository_utils import novo_id
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.telefone import normalizar_telefone


def inicio_do_mes() -> datetime:
    return now_trimmed().replace(day=1, hour=0, minute=0, second=0)


def saldo_aprovado(transacoes: Iterable[CashbackTransacaoOut]) -> Decimal:
    """Soma das transações aprovadas, nunca negativa."""
    saldo = sum(
        (t.valor_cashback for t in transacoes if t.status == StatusTransacaoCashbackEnum.APROVADO),
        ZERO,
    )
    return max(ZERO, _dec(saldo))


def saldo_insuficiente(saldo: Decimal, valor: Decimal) -> ValidationError:
    return ValidationError(
        f"Saldo de cashback insuficiente (disponível R$ {saldo:.2f}).",
        detalhes={"saldo": str(saldo), "solicitado": str(valor)},
    )


class CashbackService(ICashbackContract):
    """
    Conta de cashback por telefone.

    O saldo vale só para o mês corrente: soma das transações aprovadas desde o
    dia 1, nunca negativo. Resgates são gravados com valor negativo e a
    conferência do saldo acontece na mesma gravação do resgate.
    """

    def __init__(self, repo: ICashbackRepository, percentual=CASHBACK_PERCENTUAL):
        self.repo = repo
        self.percentual = Decimal(str(percentual))

    @staticmethod
    def _telefone(telefone: Optional[str]) -> str:
        normalizado = normalizar_telefone(telefone)
        if not normalizado:
            raise ValidationError("Telefone obrigatório para cashback.")
        return normalizado

    async def obter_saldo(self, telefone: str) -> Decimal:
        telefone = self._telefone(telefone)
        return saldo_aprovado(await self.repo.listar_por_telefone(telefone, desde=inicio_do_mes()))

    async def resgatar(self, telefone: str, valor: Decimal, referencia: Optional[str] = None) -> CashbackTransacaoOut:
        telefone = self._telefone(telefone)
        valor = _dec(valor)
        if valor <= ZERO:
            raise ValidationError("Valor de resgate deve ser positivo.")

        transacao = await self.repo.registrar_resgate(
            CashbackTransacaoOut(
                id=novo_id(),
                telefone=telefone,
                tipo=TipoTransacaoCashbackEnum.RESGATE,
                valor_cashback=-valor,
                referencia=referencia,
                created_at=now_trimmed(),
            ),
            desde=inicio_do_mes(),
        )
        logger.info(f"[Cashback] Resgate - telefone={telefone} valor={valor} referencia={referencia}")
        return transacao

    async def estornar(self, transacao: CashbackTransacaoOut) -> None:
        """Cancela um resgate cuja venda não chegou a ser gravada."""
        await self.repo.cancelar(transacao.id)
        logger.warning(
            f"[Cashback] Resgate estornado - transacao_id={transacao.id} referencia={transacao.referencia}"
        )

    async def acumular(self, telefone: str, valor_compra: Decimal, referencia: Optional[str] = None) -> Optional[CashbackTransacaoOut]:
        telefone = self._telefone(telefone)
        credito = calcular_cashback_compra(valor_compra, self.percentual)
        if credito <= ZERO:
            return None

        transacao = await self.repo.inserir(
            CashbackTransacaoOut(
                id=novo_id(),
                telefone=telefone,
                tipo=TipoTransacaoCashbackEnum.COMPRA,
                valor_compra=_dec(valor_compra),
                valor_cashback=credito,
                referencia=referencia,
                created_at=now_trimmed(),
            )
        )
        logger.info(f"[Cashback] Acúmulo - telefone={telefone} compra={valor_compra} credito={credito}")
        return transacao
