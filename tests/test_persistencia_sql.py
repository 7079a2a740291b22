import asyncio
from decimal import Decimal

import pytest

from app.api.mesas.schemas.schema_mesa import MesaIn, StatusMesaEnum, StatusVendaMesaEnum
from app.api.notifications.core.eventos import TipoEntidadeEnum
from app.api.precificacao.schemas.schema_precificacao import PagamentoIn
from app.api.shared.schemas.schema_shared_enums import MeioPagamentoEnum, PedidoStatusEnum
from app.core.exceptions import StateConflictError, ValidationError
from fabricas import item_peso, item_unidade, rascunho

SQLITE_MEMORIA = "sqlite+aiosqlite:///:memory:"


def test_ciclo_de_pedidos_no_banco(novo_container):
    async def cenario():
        container = await novo_container(backend="sql", database_url=SQLITE_MEMORIA)
        assert container.backend == "sql"
        assert container.modo_reduzido is False

        orfao = await container.pedidos.criar_pedido(rascunho())
        caixa = await container.caixa.abrir_caixa(Decimal("50"), "Operador")
        assert (await container.pedidos.obter_pedido(orfao.id)).caixa_id == caixa.id
        assert await container.pedidos.reconciliar_orfaos(caixa.id) == 0

        with pytest.raises(StateConflictError):
            await container.caixa.abrir_caixa()

        salvo = await container.pedidos.obter_pedido(orfao.id)
        assert salvo.valor_total == Decimal("36.80")
        assert salvo.itens[0].subtotal == Decimal("31.80")

        for status in (PedidoStatusEnum.CONFIRMADO, PedidoStatusEnum.PREPARANDO, PedidoStatusEnum.CANCELADO):
            await container.pedidos.atualizar_status(orfao.id, status)
        with pytest.raises(StateConflictError):
            await container.pedidos.atualizar_status(orfao.id, PedidoStatusEnum.ENTREGUE)

        historico = await container.pedidos.historico(orfao.id)
        assert [h.status_novo for h in historico] == [
            PedidoStatusEnum.PENDENTE,
            PedidoStatusEnum.CONFIRMADO,
            PedidoStatusEnum.PREPARANDO,
            PedidoStatusEnum.CANCELADO,
        ]

        alterados = await container.repo_pedidos.listar_alterados_desde(None)
        assert [e.id for e in alterados] == [orfao.id]
        assert alterados[0].tipo_entidade == TipoEntidadeEnum.PEDIDO

        assert await container.cashback.obter_saldo("11987654321") == Decimal("1.84")
        await container.encerrar()

    asyncio.run(cenario())


def test_ciclo_de_mesa_no_banco(novo_container):
    async def cenario():
        container = await novo_container(backend="sql", database_url=SQLITE_MEMORIA)
        caixa = await container.caixa.abrir_caixa()
        mesa = await container.mesas.criar_mesa(MesaIn(numero=10, capacidade=4))

        detalhe = await container.mesas.abrir_mesa(mesa.id, "Carlos", 2)
        assert detalhe.mesa.status == StatusMesaEnum.OCUPADA
        assert detalhe.venda.caixa_id == caixa.id
        with pytest.raises(StateConflictError):
            await container.mesas.abrir_mesa(mesa.id)

        await container.mesas.adicionar_item(mesa.id, item_unidade())
        venda = await container.mesas.adicionar_item(mesa.id, item_peso())
        assert venda.subtotal == Decimal("45.30")

        fechado = await container.mesas.fechar_venda(
            mesa.id, PagamentoIn(meio=MeioPagamentoEnum.DINHEIRO, troco_para=Decimal("50.00"))
        )
        assert fechado.mesa.status == StatusMesaEnum.LIMPEZA
        assert fechado.mesa.venda_atual_id is None
        assert fechado.venda.troco == Decimal("4.70")

        salva = await container.mesas.obter_venda(venda.id)
        assert salva.status == StatusVendaMesaEnum.FECHADA
        assert len(salva.itens) == 2

        await container.mesas.liberar_mesa(mesa.id)
        segunda = await container.mesas.abrir_mesa(mesa.id)
        assert segunda.venda.numero_venda == 2
        await container.encerrar()

    asyncio.run(cenario())


def test_banco_inacessivel_sobe_em_modo_reduzido(novo_container, tmp_path):
    async def cenario():
        url = f"sqlite+aiosqlite:///{tmp_path / 'nao-existe' / 'vendas.db'}"
        container = await novo_container(backend="sql", database_url=url)
        assert container.backend == "local"
        assert container.modo_reduzido is True

        pedido = await container.pedidos.criar_pedido(rascunho())
        assert (await container.pedidos.obter_pedido(pedido.id)).id == pedido.id
        await container.encerrar()

    asyncio.run(cenario())


def test_resgate_de_cashback_no_banco(novo_container):
    async def cenario():
        container = await novo_container(backend="sql", database_url=SQLITE_MEMORIA)
        assert container.backend == "sql"
        telefone = "5511987654321"
        await container.cashback.acumular(telefone, Decimal("200"))

        resultados = await asyncio.gather(
            container.cashback.resgatar(telefone, Decimal("10")),
            container.cashback.resgatar(telefone, Decimal("10")),
            return_exceptions=True,
        )
        aceitos = [r for r in resultados if not isinstance(r, Exception)]
        assert len(aceitos) == 1
        assert [type(r) for r in resultados if isinstance(r, Exception)] == [ValidationError]
        assert await container.cashback.obter_saldo(telefone) == Decimal("0.00")

        await container.cashback.estornar(aceitos[0])
        assert await container.cashback.obter_saldo(telefone) == Decimal("10.00")
        await container.encerrar()

    asyncio.run(cenario())
