"""
enum_model.py
Generator-ready representation of one enum-like group: the target type, its constants in canonical order,
and the single value kind they share.
"""
from enum import Enum
from typing import Optional, Sequence, Union


class ValueKind(Enum):
    INTEGER = "integer"
    TEXT = "text"

    @classmethod
    def of(cls, value) -> Optional['ValueKind']:
        """Kind of a folded literal, or None if the value is not representable."""
        # bool is an int subclass but never a valid enum literal
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, str):
            return cls.TEXT
        return None


class TypeDecl:
    __slots__ = ('name', 'declaring_file', 'declaring_line')

    def __init__(self, name: str, declaring_file: str, declaring_line: int):
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'declaring_file', declaring_file)
        object.__setattr__(self, 'declaring_line', declaring_line)

    @property
    def identity(self):
        return (self.declaring_file, self.name)

    def __setattr__(self, key, value):
        raise AttributeError(f"TypeDecl is immutable (tried to set {key!r})")

    def __eq__(self, other):
        if not isinstance(other, TypeDecl):
            return NotImplemented
        return (self.name, self.declaring_file, self.declaring_line) == (other.name, other.declaring_file, other.declaring_line)

    def __hash__(self):
        return hash((self.name, self.declaring_file, self.declaring_line))

    def __repr__(self):
        return f"TypeDecl(name={self.name!r}, declaring_file={self.declaring_file!r}, declaring_line={self.declaring_line!r})"


class ConstantDecl:
    def __init__(self, name: str, literal_value: Union[int, str], source_file: str, source_offset: int, module: Optional[str] = None):
        self.name = name
        self.literal_value = literal_value
        self.source_file = source_file
        self.source_offset = source_offset
        self.module = module  # module stem the constant is importable from

    @property
    def kind(self) -> Optional[ValueKind]:
        return ValueKind.of(self.literal_value)

    def sort_key(self):
        return (self.source_file, self.source_offset, self.name)

    def __eq__(self, other):
        if not isinstance(other, ConstantDecl):
            return NotImplemented
        return (self.name, self.literal_value, self.source_file, self.source_offset) == \
            (other.name, other.literal_value, other.source_file, other.source_offset)

    def __hash__(self):
        return hash((self.name, self.source_file, self.source_offset))

    def __repr__(self):
        return f"ConstantDecl(name={self.name!r}, literal_value={self.literal_value!r}, source_file={self.source_file!r}, source_offset={self.source_offset!r})"


class OrderedConstantGroup:
    """
    A TypeDecl together with its constants sorted by (source_file, source_offset).
    This order defines "first", "last" and "successor" for everything generated from the group.
    """
    def __init__(self, type_decl: TypeDecl, kind: ValueKind, constants: Sequence[ConstantDecl], type_module: Optional[str] = None):
        self.type_decl = type_decl
        self.kind = kind
        self.constants = tuple(constants)
        self.type_module = type_module

    @property
    def first(self) -> ConstantDecl:
        return self.constants[0]

    def successor(self, index: int) -> ConstantDecl:
        return self.constants[(index + 1) % len(self.constants)]

    def names(self):
        return [c.name for c in self.constants]

    def __len__(self):
        return len(self.constants)

    def __iter__(self):
        return iter(self.constants)

    def __repr__(self):
        return f"OrderedConstantGroup(type={self.type_decl.name!r}, kind={self.kind.value!r}, constants={self.names()!r})"


class GeneratedUnit:
    def __init__(self, type_decl: TypeDecl, text: str):
        self.type_decl = type_decl
        self.text = text

    def __repr__(self):
        return f"GeneratedUnit(type={self.type_decl.name!r}, lines={self.text.count(chr(10))})"
