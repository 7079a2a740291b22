from typing import List

from fastapi import APIRouter, Body, Depends, Path, status

from app.api.pedidos.schemas.schema_pedido import PedidoCreate, PedidoOut, ReconciliacaoOut
from app.api.pedidos.schemas.schema_pedido_status_historico import (
    AlterarStatusPedidoBody,
    HistoricoDoPedidoResponse,
)
from app.api.pedidos.services.dependencies import get_pedido_service
from app.api.pedidos.services.service_pedidos import PedidoService
from app.core.exceptions import CaixaFechadoError
from app.utils.logger import logger

router = APIRouter(
    prefix="/api/pedidos",
    tags=["Pedidos"],
)


@router.post("", response_model=PedidoOut, status_code=status.HTTP_201_CREATED)
async def criar_pedido(
    body: PedidoCreate = Body(...),
    svc: PedidoService = Depends(get_pedido_service),
):
    """
    Cria um pedido (delivery, manual ou PDV).

    - **itens**: ao menos um item, cada um em um único modo de preço
    - **cliente_telefone**: obrigatório quando `canal = delivery`
    - **cliente_endereco / cliente_bairro**: obrigatórios quando `tipo_entrega = delivery`
    - **pagamento**: meio único ou `misto` com as parcelas

    Sem caixa aberto o pedido fica sem `caixa_id` e é vinculado na próxima abertura.
    """
    logger.info(f"[Pedidos] Criar - canal={body.canal.value} itens={len(body.itens)}")
    return await svc.criar_pedido(body)


@router.get("", response_model=List[PedidoOut])
async def listar_pedidos(svc: PedidoService = Depends(get_pedido_service)):
    """Pedidos visíveis: do caixa aberto e os sem caixa, mais recentes primeiro."""
    return await svc.listar_visiveis()


@router.post("/reconciliar", response_model=ReconciliacaoOut)
async def reconciliar_pedidos(svc: PedidoService = Depends(get_pedido_service)):
    caixa = await svc.caixa.obter_caixa_aberto()
    if caixa is None:
        raise CaixaFechadoError("Nenhum caixa aberto para vincular pedidos.")
    vinculados = await svc.reconciliar_orfaos(caixa.id)
    return ReconciliacaoOut(caixa_id=caixa.id, vinculados=vinculados)


@router.get("/{pedido_id}", response_model=PedidoOut)
async def obter_pedido(
    pedido_id: str = Path(..., description="ID do pedido"),
    svc: PedidoService = Depends(get_pedido_service),
):
    return await svc.obter_pedido(pedido_id)


@router.patch("/{pedido_id}/status", response_model=PedidoOut)
async def atualizar_status(
    pedido_id: str = Path(..., description="ID do pedido"),
    body: AlterarStatusPedidoBody = Body(...),
    svc: PedidoService = Depends(get_pedido_service),
):
    """Qualquer status não final pode ir para qualquer outro; `delivered` e `cancelled` são finais."""
    return await svc.atualizar_status(pedido_id, body.status)


@router.get("/{pedido_id}/historico", response_model=HistoricoDoPedidoResponse)
async def historico_pedido(
    pedido_id: str = Path(..., description="ID do pedido"),
    svc: PedidoService = Depends(get_pedido_service),
):
    historicos = await svc.historico(pedido_id)
    return HistoricoDoPedidoResponse(pedido_id=pedido_id, historicos=historicos)
