import asyncio
from decimal import Decimal

import pytest

from app.api.cashback.repositories.repo_cashback_local import CashbackRepositoryLocal
from app.api.cashback.schemas.schema_cashback import StatusTransacaoCashbackEnum, TipoTransacaoCashbackEnum
from app.api.cashback.services.service_cashback import CashbackService
from app.api.mesas.schemas.schema_mesa import MesaIn, StatusMesaEnum
from app.api.pedidos.repositories.repo_pedidos_local import PedidoRepositoryLocal
from app.api.pedidos.services.service_pedidos import PedidoService
from app.api.precificacao.schemas.schema_precificacao import PagamentoIn
from app.api.shared.schemas.schema_shared_enums import MeioPagamentoEnum
from app.core.exceptions import DependencyUnavailableError, ValidationError
from app.database.local_store import LocalStore
from app.utils.timeout import com_timeout
from fabricas import item_unidade, rascunho

TELEFONE = "5511987654321"


class _CashbackComLeituraLenta(CashbackRepositoryLocal):
    """Devolve o controle ao loop depois de ler o saldo, como um banco remoto."""

    async def listar_por_telefone(self, telefone, desde=None):
        transacoes = await super().listar_por_telefone(telefone, desde)
        await asyncio.sleep(0)
        return transacoes


class _PedidosFora(PedidoRepositoryLocal):
    async def criar(self, pedido):
        return await com_timeout(asyncio.sleep(1), "gravar o pedido", 0.01)


class _CaixaFechado:
    async def obter_caixa_aberto(self):
        return None


def _resgates(transacoes, status=StatusTransacaoCashbackEnum.APROVADO):
    return [t for t in transacoes if t.tipo == TipoTransacaoCashbackEnum.RESGATE and t.status == status]


def test_resgate_acima_do_saldo_nao_grava_nada():
    async def cenario():
        repo = CashbackRepositoryLocal(LocalStore())
        cashback = CashbackService(repo, Decimal("0.05"))
        await cashback.acumular(TELEFONE, Decimal("200"))
        assert await cashback.obter_saldo(TELEFONE) == Decimal("10.00")

        with pytest.raises(ValidationError) as erro:
            await cashback.resgatar(TELEFONE, Decimal("10.01"))
        assert erro.value.detalhes == {"saldo": "10.00", "solicitado": "10.01"}
        assert _resgates(await repo.listar_por_telefone(TELEFONE)) == []

        await cashback.resgatar(TELEFONE, Decimal("10.00"))
        assert await cashback.obter_saldo(TELEFONE) == Decimal("0.00")

    asyncio.run(cenario())


def test_resgates_simultaneos_respeitam_o_saldo():
    async def cenario():
        cashback = CashbackService(CashbackRepositoryLocal(LocalStore()), Decimal("0.05"))
        await cashback.acumular(TELEFONE, Decimal("200"))

        resultados = await asyncio.gather(
            cashback.resgatar(TELEFONE, Decimal("10")),
            cashback.resgatar(TELEFONE, Decimal("10")),
            return_exceptions=True,
        )
        erros = [r for r in resultados if isinstance(r, Exception)]
        assert len(erros) == 1
        assert isinstance(erros[0], ValidationError)
        assert await cashback.obter_saldo(TELEFONE) == Decimal("0.00")

    asyncio.run(cenario())


def test_pedidos_simultaneos_nao_gastam_o_mesmo_saldo():
    async def cenario():
        store = LocalStore()
        repo_cashback = _CashbackComLeituraLenta(store)
        cashback = CashbackService(repo_cashback, Decimal("0.05"))
        service = PedidoService(PedidoRepositoryLocal(store), _CaixaFechado(), cashback)
        await cashback.acumular(TELEFONE, Decimal("200"))

        resultados = await asyncio.gather(
            service.criar_pedido(rascunho(cashback_solicitado=Decimal("10"))),
            service.criar_pedido(rascunho(cashback_solicitado=Decimal("10"))),
            return_exceptions=True,
        )
        criados = [r for r in resultados if not isinstance(r, Exception)]
        erros = [r for r in resultados if isinstance(r, Exception)]
        assert len(criados) == 1
        assert criados[0].cashback_aplicado == Decimal("10.00")
        assert len(erros) == 1
        assert isinstance(erros[0], ValidationError)

        transacoes = await repo_cashback.listar_por_telefone(TELEFONE)
        resgates = _resgates(transacoes)
        assert [(t.referencia, t.valor_cashback) for t in resgates] == [(criados[0].id, Decimal("-10.00"))]
        assert sum(t.valor_cashback for t in transacoes) >= 0

    asyncio.run(cenario())


def test_falha_ao_gravar_pedido_estorna_o_resgate():
    async def cenario():
        store = LocalStore()
        repo_cashback = CashbackRepositoryLocal(store)
        cashback = CashbackService(repo_cashback, Decimal("0.05"))
        service = PedidoService(_PedidosFora(store), _CaixaFechado(), cashback)
        await cashback.acumular(TELEFONE, Decimal("200"))

        with pytest.raises(DependencyUnavailableError):
            await service.criar_pedido(rascunho(cashback_solicitado=Decimal("10")))

        assert await cashback.obter_saldo(TELEFONE) == Decimal("10.00")
        cancelados = _resgates(await repo_cashback.listar_por_telefone(TELEFONE), StatusTransacaoCashbackEnum.CANCELADO)
        assert len(cancelados) == 1

    asyncio.run(cenario())


def test_fechar_mesa_com_cashback(novo_container):
    async def cenario():
        container = await novo_container()
        await container.cashback.acumular(TELEFONE, Decimal("200"))
        await container.caixa.abrir_caixa()
        mesa = await container.mesas.criar_mesa(MesaIn(numero=3))
        await container.mesas.abrir_mesa(mesa.id)
        await container.mesas.adicionar_item(mesa.id, item_unidade())

        fechado = await container.mesas.fechar_venda(
            mesa.id,
            PagamentoIn(meio=MeioPagamentoEnum.PIX),
            cliente_telefone="(11) 98765-4321",
            cashback_solicitado=Decimal("10"),
        )
        assert fechado.venda.cashback_aplicado == Decimal("10.00")
        assert fechado.venda.valor_total == Decimal("21.80")

        transacoes = await container.repo_cashback.listar_por_telefone(TELEFONE)
        assert [t.referencia for t in _resgates(transacoes)] == [fechado.venda.id]
        # 5% de 31,80 acumulado sobre a compra
        assert await container.cashback.obter_saldo(TELEFONE) == Decimal("1.59")
        await container.encerrar()

    asyncio.run(cenario())


def test_falha_ao_fechar_mesa_estorna_o_resgate(novo_container, monkeypatch):
    async def cenario():
        container = await novo_container()
        await container.cashback.acumular(TELEFONE, Decimal("200"))
        await container.caixa.abrir_caixa()
        mesa = await container.mesas.criar_mesa(MesaIn(numero=4))
        await container.mesas.abrir_mesa(mesa.id)
        await container.mesas.adicionar_item(mesa.id, item_unidade())

        async def _fora_do_ar(*args, **kwargs):
            raise DependencyUnavailableError("Falha ao fechar a venda.")

        monkeypatch.setattr(container.mesas.repo, "encerrar_venda", _fora_do_ar)
        with pytest.raises(DependencyUnavailableError):
            await container.mesas.fechar_venda(
                mesa.id,
                PagamentoIn(meio=MeioPagamentoEnum.PIX),
                cliente_telefone="(11) 98765-4321",
                cashback_solicitado=Decimal("10"),
            )

        assert await container.cashback.obter_saldo(TELEFONE) == Decimal("10.00")
        assert (await container.mesas.obter_mesa(mesa.id)).status == StatusMesaEnum.OCUPADA
        await container.encerrar()

    asyncio.run(cenario())
