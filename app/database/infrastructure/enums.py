"""Tipos de coluna para enums persistidos pelo valor."""
from sqlalchemy import String, TypeDecorator


class EnumValueType(TypeDecorator):
    """TypeDecorator que força o SQLAlchemy a usar o valor do enum, não o nome"""
    impl = String(30)
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        self.enum_class = enum_class
        super().__init__(*args, **kwargs)

    def process_bind_param(self, value, dialect):
        """Converte enum para seu valor (string) antes de salvar no banco"""
        if value is None:
            return None
        if isinstance(value, self.enum_class):
            return value.value
        # Valida strings soltas contra o enum
        return self.enum_class(str(value)).value

    def process_result_value(self, value, dialect):
        """Converte string do banco de volta para enum"""
        if value is None:
            return None
        return self.enum_class(value)
