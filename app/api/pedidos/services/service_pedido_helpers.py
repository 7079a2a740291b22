from __future__ import annotations

from app.api.pedidos.schemas.schema_pedido import PedidoCreate, PedidoOut
from app.api.shared.schemas.schema_shared_enums import (
    CanalPedidoEnum,
    PEDIDO_STATUS_TERMINAIS,
    PedidoStatusEnum,
    TipoEntregaEnum,
)
from app.core.exceptions import StateConflictError, ValidationError
from app.utils.telefone import celular_valido


def validar_transicao_status(pedido: PedidoOut, novo_status: PedidoStatusEnum) -> None:
    """
    Grafo permissivo: de qualquer status não terminal para qualquer outro.

    ``delivered`` e ``cancelled`` são finais; gravar de novo o mesmo status
    num pedido em andamento é aceito e gera histórico.
    """
    if pedido.status in PEDIDO_STATUS_TERMINAIS:
        raise StateConflictError(
            f"Pedido {pedido.id} já está finalizado ({pedido.status.value}).",
            detalhes={"status_atual": pedido.status.value, "status_solicitado": novo_status.value},
        )


def _vazio(valor) -> bool:
    return valor is None or not str(valor).strip()


def validar_rascunho(draft: PedidoCreate) -> None:
    if not draft.itens:
        raise ValidationError("Pedido deve ter ao menos um item.")
    if _vazio(draft.cliente_nome):
        raise ValidationError("Nome do cliente é obrigatório.")

    if draft.canal == CanalPedidoEnum.DELIVERY:
        if _vazio(draft.cliente_telefone):
            raise ValidationError("Telefone é obrigatório para pedidos de delivery.")
        if not celular_valido(draft.cliente_telefone):
            raise ValidationError("Telefone inválido")

    if draft.tipo_entrega == TipoEntregaEnum.DELIVERY:
        if _vazio(draft.cliente_endereco) or _vazio(draft.cliente_bairro):
            raise ValidationError("Endereço e bairro são obrigatórios para entrega.")
