import asyncio
import time
from decimal import Decimal

import pytest

from app.api.notifications.core.alertas import ControladorAlertas
from app.api.notifications.core.event_bus import RealtimeEventBus
from app.api.notifications.core.eventos import TipoEntidadeEnum
from app.api.notifications.services.notification_service import NotificacaoService
from app.api.pedidos.repositories.repo_pedidos_local import PedidoRepositoryLocal
from app.api.pedidos.services.service_pedidos import PedidoService
from app.api.shared.schemas.schema_shared_enums import (
    CanalPedidoEnum,
    PedidoStatusEnum,
    TipoEntregaEnum,
)
from app.core.exceptions import (
    DependencyUnavailableError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.database.local_store import LocalStore
from app.utils.timeout import com_timeout
from fabricas import rascunho


def test_cria_pedido_sem_caixa_aberto(novo_container):
    async def cenario():
        container = await novo_container()
        pedido = await container.pedidos.criar_pedido(rascunho())

        assert pedido.status == PedidoStatusEnum.PENDENTE
        assert pedido.caixa_id is None
        assert pedido.canal == CanalPedidoEnum.DELIVERY
        assert pedido.cliente_telefone == "5511987654321"
        assert pedido.subtotal == Decimal("31.80")
        assert pedido.valor_total == Decimal("36.80")
        assert pedido.itens[0].subtotal == Decimal("31.80")

        historico = await container.pedidos.historico(pedido.id)
        assert [(h.status_anterior, h.status_novo) for h in historico] == [(None, PedidoStatusEnum.PENDENTE)]
        await container.encerrar()

    asyncio.run(cenario())


def test_cria_pedido_com_caixa_aberto_ja_vinculado(novo_container):
    async def cenario():
        container = await novo_container()
        caixa = await container.caixa.abrir_caixa(Decimal("100"), "Operador")
        pedido = await container.pedidos.criar_pedido(rascunho())
        assert pedido.caixa_id == caixa.id
        await container.encerrar()

    asyncio.run(cenario())


@pytest.mark.parametrize(
    "extra, mensagem",
    [
        ({"itens": []}, "ao menos um item"),
        ({"cliente_nome": "  "}, "Nome"),
        ({"cliente_telefone": None}, "Telefone"),
        ({"cliente_telefone": "1234"}, "Telefone inválido"),
        ({"cliente_bairro": None}, "bairro"),
    ],
)
def test_rascunho_invalido_e_rejeitado(novo_container, extra, mensagem):
    async def cenario():
        container = await novo_container()
        with pytest.raises(ValidationError) as erro:
            await container.pedidos.criar_pedido(rascunho(**extra))
        assert mensagem in str(erro.value)
        assert await container.pedidos.listar_visiveis() == []
        await container.encerrar()

    asyncio.run(cenario())


def test_retirada_manual_dispensa_telefone_endereco_e_taxa(novo_container):
    async def cenario():
        container = await novo_container()
        pedido = await container.pedidos.criar_pedido(
            rascunho(
                canal=CanalPedidoEnum.MANUAL,
                tipo_entrega=TipoEntregaEnum.RETIRADA,
                cliente_telefone=None,
                cliente_endereco=None,
                cliente_bairro=None,
            )
        )
        assert pedido.taxa_entrega == Decimal("0.00")
        assert pedido.valor_total == Decimal("31.80")
        await container.encerrar()

    asyncio.run(cenario())


def test_grafo_de_status_permissivo_com_estados_finais(novo_container):
    async def cenario():
        container = await novo_container()
        pedido = await container.pedidos.criar_pedido(rascunho())

        entregue = await container.pedidos.atualizar_status(pedido.id, PedidoStatusEnum.ENTREGUE)
        assert entregue.status == PedidoStatusEnum.ENTREGUE

        with pytest.raises(StateConflictError):
            await container.pedidos.atualizar_status(pedido.id, PedidoStatusEnum.CANCELADO)

        historico = await container.pedidos.historico(pedido.id)
        assert [h.status_novo for h in historico] == [PedidoStatusEnum.PENDENTE, PedidoStatusEnum.ENTREGUE]
        assert [h.ordem for h in historico] == [1, 2]
        assert (await container.pedidos.obter_pedido(pedido.id)).status == PedidoStatusEnum.ENTREGUE
        await container.encerrar()

    asyncio.run(cenario())


def test_status_de_pedido_inexistente(novo_container):
    async def cenario():
        container = await novo_container()
        with pytest.raises(NotFoundError):
            await container.pedidos.atualizar_status("nao-existe", PedidoStatusEnum.CONFIRMADO)
        with pytest.raises(NotFoundError):
            await container.pedidos.historico("nao-existe")
        await container.encerrar()

    asyncio.run(cenario())


def test_abrir_caixa_vincula_orfaos_uma_unica_vez(novo_container):
    async def cenario():
        container = await novo_container()
        primeiro = await container.pedidos.criar_pedido(rascunho())
        segundo = await container.pedidos.criar_pedido(rascunho(cliente_nome="Bia"))

        caixa = await container.caixa.abrir_caixa()
        for pedido_id in (primeiro.id, segundo.id):
            assert (await container.pedidos.obter_pedido(pedido_id)).caixa_id == caixa.id

        assert await container.pedidos.reconciliar_orfaos(caixa.id) == 0
        await container.encerrar()

    asyncio.run(cenario())


def test_pedidos_visiveis_seguem_o_caixa(novo_container):
    async def cenario():
        container = await novo_container()
        caixa = await container.caixa.abrir_caixa()
        do_caixa = await container.pedidos.criar_pedido(rascunho())
        assert [p.id for p in await container.pedidos.listar_visiveis()] == [do_caixa.id]

        await container.caixa.fechar_caixa(caixa.id)
        assert await container.pedidos.listar_visiveis() == []

        orfao = await container.pedidos.criar_pedido(rascunho(cliente_nome="Bia"))
        assert [p.id for p in await container.pedidos.listar_visiveis()] == [orfao.id]
        await container.encerrar()

    asyncio.run(cenario())


def test_cashback_resgatado_e_acumulado(novo_container):
    async def cenario():
        container = await novo_container()
        telefone = "5511987654321"

        await container.pedidos.criar_pedido(rascunho())
        # 5% de (31,80 + 5,00)
        assert await container.cashback.obter_saldo(telefone) == Decimal("1.84")

        segundo = await container.pedidos.criar_pedido(rascunho(cashback_solicitado=Decimal("10")))
        assert segundo.cashback_aplicado == Decimal("1.84")
        assert segundo.valor_total == Decimal("34.96")
        assert await container.cashback.obter_saldo(telefone) == Decimal("1.84")
        await container.encerrar()

    asyncio.run(cenario())


def test_cashback_sem_telefone_e_rejeitado(novo_container):
    async def cenario():
        container = await novo_container()
        with pytest.raises(ValidationError):
            await container.pedidos.criar_pedido(
                rascunho(
                    canal=CanalPedidoEnum.PDV,
                    tipo_entrega=TipoEntregaEnum.RETIRADA,
                    cliente_telefone=None,
                    cashback_solicitado=Decimal("5"),
                )
            )
        await container.encerrar()

    asyncio.run(cenario())


def test_notificacao_registrada_na_criacao(novo_container):
    async def cenario():
        container = await novo_container()
        pedido = await container.pedidos.criar_pedido(rascunho())
        notificacoes = await container.notificacoes.listar_recentes()
        assert [(n.tipo, n.referencia) for n in notificacoes] == [("new_order", pedido.id)]
        await container.encerrar()

    asyncio.run(cenario())


class _NotificacoesFora:
    async def inserir(self, notificacao):
        raise DependencyUnavailableError("fora do ar")

    async def listar_recentes(self, limite=50):
        return []


class _RepoLento(PedidoRepositoryLocal):
    async def criar(self, pedido):
        return await com_timeout(asyncio.sleep(1), "gravar o pedido", 0.01)


class _CaixaFechado:
    async def obter_caixa_aberto(self):
        return None


def test_falha_na_notificacao_nao_derruba_o_pedido():
    async def cenario():
        store = LocalStore()
        service = PedidoService(
            PedidoRepositoryLocal(store),
            _CaixaFechado(),
            notificacoes=NotificacaoService(_NotificacoesFora()),
        )
        pedido = await service.criar_pedido(rascunho())
        assert await service.obter_pedido(pedido.id) == pedido

    asyncio.run(cenario())


def test_persistencia_indisponivel_propaga_erro():
    async def cenario():
        service = PedidoService(_RepoLento(LocalStore()), _CaixaFechado())
        with pytest.raises(DependencyUnavailableError):
            await service.criar_pedido(rascunho())

    asyncio.run(cenario())


def test_falha_ao_gravar_status_mantem_o_estado_anterior(tmp_path, monkeypatch):
    async def cenario():
        store = LocalStore(str(tmp_path / "vendas.json"))
        repo = PedidoRepositoryLocal(store)
        bus = RealtimeEventBus(ControladorAlertas(10))
        repo.assinar(bus.receber)
        service = PedidoService(repo, _CaixaFechado(), realtime=bus)
        pedido = await service.criar_pedido(rascunho())

        repo.timeout = 0.05
        # Disco travado depois que pedido e histórico já foram preparados
        monkeypatch.setattr(store, "_gravar_arquivo", lambda dados: time.sleep(0.2))
        with pytest.raises(DependencyUnavailableError):
            await service.atualizar_status(pedido.id, PedidoStatusEnum.CONFIRMADO)

        assert bus.obter(TipoEntidadeEnum.PEDIDO, pedido.id).status == PedidoStatusEnum.PENDENTE
        assert bus.alertas.ativo(pedido.id)
        assert (await repo.obter(pedido.id)).status == PedidoStatusEnum.PENDENTE
        assert len(await repo.historico(pedido.id)) == 1
        bus.encerrar()

    asyncio.run(cenario())
