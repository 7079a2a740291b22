import re
from typing import Optional


def normalizar_telefone(telefone: Optional[str]) -> Optional[str]:
    """
    Normaliza o número de telefone removendo caracteres não numéricos e
    garantindo o prefixo do país (55) quando for um número brasileiro.

    Regras:
    - Remove máscara: espaços, parênteses, hífen, '+' etc.
    - Remove prefixo internacional "00" (ex: 0055...).
    - Se não começar com "55" e tiver até 11 dígitos (formato BR sem país),
      prefixa com "55".

    IMPORTANTE: NÃO adiciona dígitos como "9" - usa o número EXATAMENTE como recebido.
    """
    if telefone is None:
        return None

    telefone_limpo = re.sub(r"[^\d]", "", telefone)
    if not telefone_limpo:
        return telefone_limpo

    # Ex.: 0055...
    if telefone_limpo.startswith("00"):
        telefone_limpo = telefone_limpo[2:]

    # Ex.: 0 + DDD + número
    if telefone_limpo.startswith("0") and len(telefone_limpo) in (11, 12):
        telefone_limpo = telefone_limpo.lstrip("0")

    if telefone_limpo.startswith("55") and len(telefone_limpo) >= 12:
        return telefone_limpo

    if len(telefone_limpo) <= 11:
        return "55" + telefone_limpo

    return telefone_limpo


def celular_valido(telefone: Optional[str]) -> bool:
    """Celular BR completo: DDD + 9 dígitos (11 dígitos nacionais)."""
    normalizado = normalizar_telefone(telefone)
    if not normalizado or not normalizado.startswith("55"):
        return False
    return len(normalizado[2:]) == 11
