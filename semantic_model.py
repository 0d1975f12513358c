"""
semantic_model.py
Read-only view of every definition found in the loaded sources. Definitions are classified once, when the
model is built, into type, constant and other definitions, and are queried through find_by_name,
find_in_file_after_line and constants_of_type.
"""
import os
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class DefinitionKind(Enum):
    TYPE = "type"
    CONSTANT = "constant"
    FUNCTION = "function"
    VARIABLE = "variable"


class SourcePosition:
    def __init__(self, file: str, line: int, offset: int):
        self.file = file
        self.line = line
        self.offset = offset

    def sort_key(self):
        return (self.file, self.offset)

    def __eq__(self, other):
        if not isinstance(other, SourcePosition):
            return NotImplemented
        return (self.file, self.line, self.offset) == (other.file, other.line, other.offset)

    def __hash__(self):
        return hash((self.file, self.line, self.offset))

    def __str__(self):
        return f"{self.file}:{self.line}"

    def __repr__(self):
        return f"SourcePosition(file={self.file!r}, line={self.line!r}, offset={self.offset!r})"


class Definition:
    kind = DefinitionKind.VARIABLE

    def __init__(self, name: str, position: SourcePosition, module: Optional[str] = None):
        self.name = name
        self.position = position
        self.module = module

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, position={self.position!r})"


class TypeDefinition(Definition):
    kind = DefinitionKind.TYPE

    def __init__(self, name: str, position: SourcePosition, module: Optional[str] = None, base: Optional[str] = None,
                 underlying: Optional[str] = None):
        super().__init__(name, position, module)
        self.base = base
        # "int" or "str" when the type derives from one of them, directly or through other named types
        self.underlying = underlying

    @property
    def identity(self):
        # nominal identity: two types with the same name in different files are different types
        return (self.position.file, self.name)


class ConstantDefinition(Definition):
    kind = DefinitionKind.CONSTANT

    def __init__(self, name: str, position: SourcePosition, value, declared_type: Optional[TypeDefinition] = None, module: Optional[str] = None):
        super().__init__(name, position, module)
        self.value = value
        self.declared_type = declared_type


class FunctionDefinition(Definition):
    kind = DefinitionKind.FUNCTION


class VariableDefinition(Definition):
    kind = DefinitionKind.VARIABLE


def normalize_path(path: str) -> str:
    return os.path.normcase(os.path.realpath(path))


def _by_position(definitions: Iterable[Definition]) -> List[Definition]:
    return sorted(definitions, key=lambda d: (d.position.sort_key(), d.name))


class SemanticModel:
    def __init__(self, type_definitions: Iterable[TypeDefinition] = (), constant_definitions: Iterable[ConstantDefinition] = (),
                 other_definitions: Iterable[Definition] = (), files: Iterable[str] = (),
                 imported_types: Optional[Dict[Tuple[str, str], TypeDefinition]] = None):
        self.type_definitions = _by_position(type_definitions)
        self.constant_definitions = _by_position(constant_definitions)
        self.other_definitions = _by_position(other_definitions)
        self.files = sorted(files)
        self.imported_types = dict(imported_types or {})  # (importing file, local name) -> TypeDefinition

    def all_definitions(self) -> List[Definition]:
        return _by_position(self.type_definitions + self.constant_definitions + self.other_definitions)

    def find_by_name(self, name: str) -> List[TypeDefinition]:
        return [t for t in self.type_definitions if t.name == name]

    def find_in_file_after_line(self, file: str, line: int) -> List[Definition]:
        """All definitions located in file at or after line, ordered by position."""
        file = normalize_path(file)
        return [d for d in self.all_definitions() if d.position.file == file and d.position.line >= line]

    def constants_of_type(self, target: TypeDefinition) -> List[ConstantDefinition]:
        return [
            c for c in self.constant_definitions
            if c.declared_type is not None and c.declared_type.identity == target.identity
        ]

    def type_definition_for(self, type_decl) -> Optional[TypeDefinition]:
        for t in self.type_definitions:
            if t.name == type_decl.name and t.position.file == type_decl.declaring_file and t.position.line == type_decl.declaring_line:
                return t
        return None

    def find_visible_type(self, file: str, name: str) -> Optional[TypeDefinition]:
        """The type name refers to inside file: a type defined there, else one imported under that name."""
        file = normalize_path(file)
        for t in self.type_definitions:
            if t.name == name and t.position.file == file:
                return t
        return self.imported_types.get((file, name))
