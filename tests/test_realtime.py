import asyncio
import json

from app.api.notifications.core.alertas import ControladorAlertas
from app.api.notifications.core.event_bus import RealtimeEventBus
from app.api.notifications.core.eventos import EventoAlteracao, TipoEntidadeEnum, TipoEventoEnum
from app.api.notifications.core.polling import FontePolling
from app.api.notifications.core.websocket_manager import ConnectionManager
from app.api.shared.schemas.schema_shared_enums import PedidoStatusEnum
from fabricas import antes, mesa, pedido, rascunho

PEDIDO = TipoEntidadeEnum.PEDIDO


def _evento(payload, tipo=TipoEntidadeEnum.PEDIDO, tipo_evento=TipoEventoEnum.UPDATE):
    return EventoAlteracao(tipo, payload.id, payload, tipo_evento)


def _barramento(intervalo=10):
    return RealtimeEventBus(ControladorAlertas(intervalo))


def test_evento_repetido_e_descartado():
    async def cenario():
        bus = _barramento()
        recebidos = []
        bus.assinar(PEDIDO, recebidos.append)
        p = pedido()

        assert await bus.receber(_evento(p, tipo_evento=TipoEventoEnum.INSERT)) is True
        # Mesma alteração chegando pelo polling
        assert await bus.receber(_evento(p)) is False
        assert len(recebidos) == 1
        bus.encerrar()

    asyncio.run(cenario())


def test_evento_mais_antigo_que_o_conhecido_e_descartado():
    async def cenario():
        bus = _barramento()
        atual = pedido(status=PedidoStatusEnum.CONFIRMADO)
        antigo = pedido(status=PedidoStatusEnum.PENDENTE, updated_at=antes(30))
        bus.semear(PEDIDO, [atual])

        assert await bus.receber(_evento(antigo)) is False
        assert bus.obter(PEDIDO, atual.id).status == PedidoStatusEnum.CONFIRMADO
        bus.encerrar()

    asyncio.run(cenario())


def test_escrita_anterior_no_mesmo_segundo_e_descartada():
    async def cenario():
        bus = _barramento()
        agora = antes(0)
        pendente = pedido(status=PedidoStatusEnum.PENDENTE, updated_at=agora)
        confirmado = pendente.model_copy(update={"status": PedidoStatusEnum.CONFIRMADO, "versao": 2})

        assert await bus.receber(_evento(pendente, tipo_evento=TipoEventoEnum.INSERT)) is True
        assert await bus.receber(_evento(confirmado)) is True
        # Polling atrasado devolve a primeira escrita, com o mesmo updated_at
        assert await bus.receber(_evento(pendente)) is False

        assert bus.obter(PEDIDO, pendente.id).status == PedidoStatusEnum.CONFIRMADO
        assert not bus.alertas.ativo(pendente.id)
        bus.encerrar()

    asyncio.run(cenario())


def test_travas_por_entidade_sao_liberadas():
    async def cenario():
        bus = _barramento()

        async def lento(evento):
            await asyncio.sleep(0)

        bus.assinar(PEDIDO, lento)
        eventos = []
        for i in range(50):
            p = pedido(f"p{i % 5}", status=PedidoStatusEnum.CONFIRMADO)
            eventos.append(_evento(p.model_copy(update={"versao": i + 1})))

        await asyncio.gather(*(bus.receber(e) for e in eventos))
        assert bus._travas == {}
        assert len(bus.listar(PEDIDO)) == 5
        bus.encerrar()

    asyncio.run(cenario())


def test_id_desconhecido_e_tratado_como_insercao():
    async def cenario():
        bus = _barramento()
        tipos = []
        bus.assinar(PEDIDO, lambda e: tipos.append(e.tipo_evento))

        p = pedido(status=PedidoStatusEnum.CONFIRMADO)
        await bus.receber(_evento(p, tipo_evento=TipoEventoEnum.UPDATE))
        await bus.receber(_evento(p.model_copy(update={"status": PedidoStatusEnum.PREPARANDO, "versao": 2})))

        assert tipos == [TipoEventoEnum.INSERT, TipoEventoEnum.UPDATE]
        bus.encerrar()

    asyncio.run(cenario())


def test_novo_pedido_entra_na_colecao_e_alerta_antes_dos_assinantes():
    async def cenario():
        bus = _barramento()
        observado = {}

        def ao_novo(evento):
            observado["na_colecao"] = bus.obter(PEDIDO, evento.id) is not None
            observado["alerta_ativo"] = bus.alertas.ativo(evento.id)

        bus.ao_novo_pedido(ao_novo)
        await bus.receber(_evento(pedido(), tipo_evento=TipoEventoEnum.INSERT))

        assert observado == {"na_colecao": True, "alerta_ativo": True}
        bus.encerrar()

    asyncio.run(cenario())


def test_ao_novo_pedido_ignora_atualizacoes():
    async def cenario():
        bus = _barramento()
        novos = []
        bus.ao_novo_pedido(novos.append)
        p = pedido()
        await bus.receber(_evento(p))
        await bus.receber(_evento(p.model_copy(update={"status": PedidoStatusEnum.CONFIRMADO, "versao": 2})))
        assert [e.id for e in novos] == [p.id]
        bus.encerrar()

    asyncio.run(cenario())


def test_erro_no_assinante_nao_interrompe_os_demais():
    async def cenario():
        bus = _barramento()
        chamados = []

        def quebra(evento):
            raise RuntimeError("falhou")

        bus.assinar(PEDIDO, quebra)
        bus.assinar(PEDIDO, chamados.append)
        assert await bus.receber(_evento(pedido(status=PedidoStatusEnum.CONFIRMADO))) is True
        assert len(chamados) == 1
        bus.encerrar()

    asyncio.run(cenario())


def test_cancelar_assinatura():
    async def cenario():
        bus = _barramento()
        chamados = []
        assinatura = bus.assinar(TipoEntidadeEnum.MESA, chamados.append)
        await bus.receber(_evento(mesa(), TipoEntidadeEnum.MESA))
        assinatura.cancelar()
        assinatura.cancelar()
        await bus.receber(_evento(mesa(numero=2), TipoEntidadeEnum.MESA))
        assert len(chamados) == 1

    asyncio.run(cenario())


def test_eventos_da_mesma_entidade_em_ordem_de_chegada():
    async def cenario():
        bus = _barramento()
        ordem = []

        async def lento(evento):
            ordem.append(("inicio", evento.payload.status))
            await asyncio.sleep(0.01)
            ordem.append(("fim", evento.payload.status))

        bus.assinar(PEDIDO, lento)
        p = pedido(status=PedidoStatusEnum.CONFIRMADO)
        await asyncio.gather(
            bus.receber(_evento(p)),
            bus.receber(_evento(p.model_copy(update={"status": PedidoStatusEnum.PREPARANDO, "versao": 2}))),
        )
        assert ordem == [
            ("inicio", PedidoStatusEnum.CONFIRMADO),
            ("fim", PedidoStatusEnum.CONFIRMADO),
            ("inicio", PedidoStatusEnum.PREPARANDO),
            ("fim", PedidoStatusEnum.PREPARANDO),
        ]

    asyncio.run(cenario())


def test_alerta_cancelado_so_para_o_pedido_que_saiu_de_pendente():
    async def cenario():
        bus = _barramento()
        a, b = pedido("a"), pedido("b")
        await bus.receber(_evento(a))
        await bus.receber(_evento(b))
        assert sorted(bus.alertas.ativos) == ["a", "b"]

        await bus.receber(_evento(a.model_copy(update={"status": PedidoStatusEnum.CONFIRMADO, "versao": 2})))
        assert not bus.alertas.ativo("a")
        assert bus.alertas.ativo("b")
        bus.encerrar()
        assert bus.alertas.ativos == []

    asyncio.run(cenario())


def test_alerta_repete_ate_ser_cancelado():
    async def cenario():
        alertas = ControladorAlertas(0.01)
        disparos = []
        alertas.ao_alertar(disparos.append)

        alertas.iniciar("p1")
        await asyncio.sleep(0.05)
        assert len(disparos) >= 2

        alertas.cancelar("p1")
        await asyncio.sleep(0)
        total = len(disparos)
        await asyncio.sleep(0.03)
        assert len(disparos) == total
        assert not alertas.ativo("p1")

    asyncio.run(cenario())


def test_polling_segue_apos_falha_e_nao_duplica():
    async def cenario():
        bus = _barramento()
        p = pedido(status=PedidoStatusEnum.CONFIRMADO)
        cursores = []

        async def consulta_ok(cursor):
            cursores.append(cursor)
            return [_evento(p)]

        async def consulta_quebrada(cursor):
            raise ConnectionError("banco fora")

        polling = FontePolling(bus, [consulta_quebrada, consulta_ok], intervalo_segundos=0)
        assert await polling.executar_uma_vez() == 1
        assert await polling.executar_uma_vez() == 0
        assert cursores == [None, p.updated_at]

    asyncio.run(cenario())


class _WebSocketFalso:
    def __init__(self):
        self.mensagens = []

    async def accept(self):
        pass

    async def send_text(self, texto):
        self.mensagens.append(json.loads(texto))


def test_websocket_recebe_eventos_filtrados():
    async def cenario():
        bus = _barramento()
        manager = ConnectionManager()
        manager.conectar_barramento(bus)

        todos, so_mesas = _WebSocketFalso(), _WebSocketFalso()
        await manager.connect(todos)
        await manager.connect(so_mesas, {TipoEntidadeEnum.MESA})

        await bus.receber(_evento(pedido(status=PedidoStatusEnum.CONFIRMADO)))
        await bus.receber(_evento(mesa(), TipoEntidadeEnum.MESA))

        assert [m["type"] for m in todos.mensagens] == ["pedido.insert", "mesa.insert"]
        assert [m["type"] for m in so_mesas.mensagens] == ["mesa.insert"]
        assert so_mesas.mensagens[0]["data"]["status"] == "livre"

        manager.desconectar_barramento()
        await bus.receber(_evento(mesa(numero=9), TipoEntidadeEnum.MESA))
        assert len(todos.mensagens) == 2

    asyncio.run(cenario())


def test_gravacoes_chegam_ao_barramento_pelo_repositorio(novo_container):
    async def cenario():
        container = await novo_container()
        novos = []
        container.realtime.ao_novo_pedido(novos.append)

        criado = await container.pedidos.criar_pedido(rascunho())
        assert [e.id for e in novos] == [criado.id]
        assert container.realtime.alertas.ativo(criado.id)

        await container.pedidos.atualizar_status(criado.id, PedidoStatusEnum.CONFIRMADO)
        assert not container.realtime.alertas.ativo(criado.id)
        assert container.realtime.obter(PEDIDO, criado.id).status == PedidoStatusEnum.CONFIRMADO
        assert container.realtime.obter(PEDIDO, criado.id).versao == criado.versao + 1

        # Polling logo depois não gera nada novo
        assert await container.polling.executar_uma_vez() == 0
        await container.encerrar()

    asyncio.run(cenario())
