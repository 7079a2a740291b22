from typing import List

from fastapi import APIRouter, Body, Depends, Path, status

from app.api.mesas.schemas.schema_mesa import (
    AbrirMesaRequest,
    CancelarVendaRequest,
    DefinirDescontoRequest,
    FecharVendaRequest,
    MesaDetalheOut,
    MesaEstatisticasOut,
    MesaIn,
    MesaOut,
    VendaMesaOut,
)
from app.api.mesas.services.dependencies import get_venda_mesa_service
from app.api.mesas.services.service_vendas_mesa import VendaMesaService
from app.api.precificacao.schemas.schema_precificacao import ItemVendaIn

router = APIRouter(
    prefix="/api/mesas",
    tags=["Mesas"],
)


# ======================================================================
# =============================== MESAS ================================
@router.post("", response_model=MesaOut, status_code=status.HTTP_201_CREATED)
async def criar_mesa(body: MesaIn = Body(...), svc: VendaMesaService = Depends(get_venda_mesa_service)):
    return await svc.criar_mesa(body)


@router.get("", response_model=List[MesaOut])
async def listar_mesas(svc: VendaMesaService = Depends(get_venda_mesa_service)):
    return await svc.listar_mesas()


@router.get("/estatisticas", response_model=MesaEstatisticasOut)
async def estatisticas_mesas(svc: VendaMesaService = Depends(get_venda_mesa_service)):
    return await svc.estatisticas()


@router.get("/vendas/{venda_id}", response_model=VendaMesaOut)
async def obter_venda(
    venda_id: str = Path(..., description="ID da venda"),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    return await svc.obter_venda(venda_id)


@router.get("/{mesa_id}", response_model=MesaDetalheOut)
async def obter_mesa(
    mesa_id: str = Path(..., description="ID da mesa"),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    """Mesa com a venda aberta, se houver"""
    return await svc.obter_detalhe(mesa_id)


# ======================================================================
# ============================ CICLO DA VENDA ==========================
@router.post("/{mesa_id}/abrir", response_model=MesaDetalheOut, status_code=status.HTTP_201_CREATED)
async def abrir_mesa(
    mesa_id: str = Path(...),
    body: AbrirMesaRequest = Body(default_factory=AbrirMesaRequest),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    """Só abre mesa livre; `qtd_clientes` não pode passar da capacidade."""
    return await svc.abrir_mesa(mesa_id, body.cliente_nome, body.qtd_clientes)


@router.post("/{mesa_id}/solicitar-conta", response_model=MesaOut)
async def solicitar_conta(mesa_id: str = Path(...), svc: VendaMesaService = Depends(get_venda_mesa_service)):
    return await svc.solicitar_conta(mesa_id)


@router.post("/{mesa_id}/itens", response_model=VendaMesaOut)
async def adicionar_item(
    mesa_id: str = Path(...),
    body: ItemVendaIn = Body(...),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    return await svc.adicionar_item(mesa_id, body)


@router.delete("/{mesa_id}/itens/{item_id}", response_model=VendaMesaOut)
async def remover_item(
    mesa_id: str = Path(...),
    item_id: str = Path(...),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    return await svc.remover_item(mesa_id, item_id)


@router.put("/{mesa_id}/desconto", response_model=VendaMesaOut)
async def definir_desconto(
    mesa_id: str = Path(...),
    body: DefinirDescontoRequest = Body(...),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    return await svc.definir_desconto(mesa_id, body)


@router.post("/{mesa_id}/fechar", response_model=MesaDetalheOut)
async def fechar_venda(
    mesa_id: str = Path(...),
    body: FecharVendaRequest = Body(...),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    """
    Fecha a venda e leva a mesa para limpeza.

    Exige itens, total maior que zero e caixa aberto.
    """
    return await svc.fechar_venda(mesa_id, body.pagamento, body.cliente_telefone, body.cashback_solicitado)


@router.post("/{mesa_id}/cancelar", response_model=MesaDetalheOut)
async def cancelar_venda(
    mesa_id: str = Path(...),
    body: CancelarVendaRequest = Body(...),
    svc: VendaMesaService = Depends(get_venda_mesa_service),
):
    return await svc.cancelar_venda(mesa_id, body.motivo)


@router.post("/{mesa_id}/liberar", response_model=MesaOut)
async def liberar_mesa(mesa_id: str = Path(...), svc: VendaMesaService = Depends(get_venda_mesa_service)):
    """Liberação administrativa: sempre permitida"""
    return await svc.liberar_mesa(mesa_id)
