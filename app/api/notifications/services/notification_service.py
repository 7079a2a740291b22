from typing import List, Optional

from app.api.mesas.schemas.schema_mesa import MesaOut, VendaMesaOut
from app.api.notifications.contracts.repository_contracts import INotificacaoRepository
from app.api.notifications.schemas.schema_notificacao import NotificacaoOut
from app.api.pedidos.schemas.schema_pedido import PedidoOut
from app.api.shared.schemas.schema_shared_enums import PEDIDO_STATUS_DESCRICAO, CanalPedidoEnum
from app.database.repository_utils import novo_id
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger


class NotificacaoService:
    """
    Registro de notificações para o painel do operador.

    Nenhuma falha aqui interrompe a operação que gerou a notificação: o pedido
    ou a venda já foi gravado, então o erro é só registrado em log.
    """

    def __init__(self, repo: INotificacaoRepository):
        self.repo = repo

    async def registrar(
        self,
        tipo: str,
        titulo: str,
        mensagem: str,
        referencia: Optional[str] = None,
    ) -> Optional[NotificacaoOut]:
        notificacao = NotificacaoOut(
            id=novo_id(),
            tipo=tipo,
            titulo=titulo,
            mensagem=mensagem,
            referencia=referencia,
            created_at=now_trimmed(),
        )
        try:
            return await self.repo.inserir(notificacao)
        except Exception as e:
            logger.warning(f"[Notificacoes] Erro ao criar notificação (não crítico): {e}")
            return None

    async def pedido_criado(self, pedido: PedidoOut) -> Optional[NotificacaoOut]:
        cliente = pedido.cliente_nome or "cliente"
        if pedido.canal == CanalPedidoEnum.MANUAL:
            titulo, mensagem = "Pedido Manual Criado", f"Pedido manual criado para {cliente}"
        else:
            titulo, mensagem = "Novo Pedido", f"Novo pedido de {cliente}"
        return await self.registrar("new_order", titulo, mensagem, pedido.id)

    async def status_atualizado(self, pedido: PedidoOut) -> Optional[NotificacaoOut]:
        return await self.registrar(
            "status_update",
            "Status Atualizado",
            PEDIDO_STATUS_DESCRICAO[pedido.status],
            pedido.id,
        )

    async def venda_mesa_fechada(self, mesa: MesaOut, venda: VendaMesaOut) -> Optional[NotificacaoOut]:
        return await self.registrar(
            "table_sale_closed",
            "Mesa Fechada",
            f"Mesa {mesa.numero} fechada - venda #{venda.numero_venda} R$ {venda.valor_total:.2f}",
            venda.id,
        )

    async def listar_recentes(self, limite: int = 50) -> List[NotificacaoOut]:
        return await self.repo.listar_recentes(limite)
