from typing import Optional

from app.api.caixas.contracts.caixa_contract import ICaixaRepository
from app.api.caixas.schemas.schema_caixa import CaixaResponse, CaixaStatusEnum
from app.core.exceptions import NotFoundError, StateConflictError
from app.database.local_store import LocalStore
from app.database.repository_utils import para_registro
from app.utils.database_utils import now_trimmed
from app.utils.timeout import com_timeout


class CaixaRepositoryLocal(ICaixaRepository):
    """Repository de sessões de caixa no cache local"""

    def __init__(self, store: LocalStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    async def abrir(self, caixa: CaixaResponse) -> CaixaResponse:
        async def _op():
            async with self.store.transacao() as tabelas:
                for registro in tabelas["caixas"].values():
                    if registro["status"] == CaixaStatusEnum.ABERTO.value:
                        raise StateConflictError("Já existe um caixa aberto.", detalhes={"caixa_id": registro["id"]})
                tabelas["caixas"][caixa.id] = para_registro(caixa)
            return caixa

        return await com_timeout(_op(), "abrir o caixa", self.timeout)

    async def obter(self, caixa_id: str) -> Optional[CaixaResponse]:
        registro = self.store.tabela("caixas").get(caixa_id)
        return CaixaResponse.model_validate(registro) if registro else None

    async def obter_aberto(self) -> Optional[CaixaResponse]:
        for registro in self.store.tabela("caixas").values():
            if registro["status"] == CaixaStatusEnum.ABERTO.value:
                return CaixaResponse.model_validate(registro)
        return None

    async def fechar(self, caixa_id: str) -> CaixaResponse:
        async def _op():
            async with self.store.transacao() as tabelas:
                registro = tabelas["caixas"].get(caixa_id)
                if registro is None:
                    raise NotFoundError(f"Caixa {caixa_id} não encontrado.")
                caixa = CaixaResponse.model_validate(registro)
                if caixa.status != CaixaStatusEnum.ABERTO:
                    raise StateConflictError("Caixa já está fechado.")
                caixa = caixa.model_copy(update={"status": CaixaStatusEnum.FECHADO, "fechado_em": now_trimmed()})
                tabelas["caixas"][caixa_id] = para_registro(caixa)
            return caixa

        return await com_timeout(_op(), "fechar o caixa", self.timeout)
