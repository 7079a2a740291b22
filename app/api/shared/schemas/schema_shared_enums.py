from enum import Enum


class PedidoStatusEnum(str, Enum):
    PENDENTE = "pending"
    CONFIRMADO = "confirmed"
    PREPARANDO = "preparing"
    SAIU_PARA_ENTREGA = "out_for_delivery"
    PRONTO_RETIRADA = "ready_for_pickup"
    ENTREGUE = "delivered"
    CANCELADO = "cancelled"


PEDIDO_STATUS_TERMINAIS = frozenset({PedidoStatusEnum.ENTREGUE, PedidoStatusEnum.CANCELADO})

PEDIDO_STATUS_DESCRICAO = {
    PedidoStatusEnum.PENDENTE: "Pedido recebido",
    PedidoStatusEnum.CONFIRMADO: "Pedido confirmado",
    PedidoStatusEnum.PREPARANDO: "Pedido em preparo",
    PedidoStatusEnum.SAIU_PARA_ENTREGA: "Pedido saiu para entrega",
    PedidoStatusEnum.PRONTO_RETIRADA: "Pedido pronto para retirada",
    PedidoStatusEnum.ENTREGUE: "Pedido entregue",
    PedidoStatusEnum.CANCELADO: "Pedido cancelado",
}


class TipoEntregaEnum(str, Enum):
    DELIVERY = "delivery"
    RETIRADA = "pickup"


class CanalPedidoEnum(str, Enum):
    DELIVERY = "delivery"
    MANUAL = "manual"
    PDV = "pdv"


class MeioPagamentoEnum(str, Enum):
    DINHEIRO = "dinheiro"
    PIX = "pix"
    CARTAO_CREDITO = "cartao_credito"
    CARTAO_DEBITO = "cartao_debito"
    VOUCHER = "voucher"
    MISTO = "misto"


# Meios que aceitam troco
MEIOS_DINHEIRO = frozenset({MeioPagamentoEnum.DINHEIRO})


class ModoPrecoEnum(str, Enum):
    UNIDADE = "unidade"
    PESO = "peso"


class TipoDescontoEnum(str, Enum):
    NENHUM = "none"
    PERCENTUAL = "percentage"
    VALOR = "amount"
