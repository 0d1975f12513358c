"""
type_locator.py
Finds the named type to generate code for, either by name or as the first declaration following an anchor line.
"""
import sys
from typing import Optional

from enum_model import TypeDecl
from enumerator_errors import AmbiguousAnchor, AmbiguousTypeName, TypeNotFound
from semantic_model import DefinitionKind, SemanticModel, TypeDefinition, normalize_path


def locate(model: SemanticModel, explicit_name: Optional[str] = None, anchor_file: Optional[str] = None,
           anchor_line: int = 0, verbose: bool = False) -> TypeDecl:
    """
    Resolve the target type.

    If explicit_name is given, the type with that name as seen from anchor_file is returned. Otherwise the nearest declaration at or
    after anchor_line in anchor_file must be a named type.
    """
    if explicit_name:
        definition = find_type_by_name(model, explicit_name, anchor_file)
    else:
        definition = find_type_by_position(model, anchor_file, anchor_line)
    if verbose:
        print(f"DEBUG: Located type {definition.name} at {definition.position}", file=sys.stderr)
    return to_type_decl(definition)


def to_type_decl(definition: TypeDefinition) -> TypeDecl:
    return TypeDecl(definition.name, definition.position.file, definition.position.line)


def find_type_by_name(model: SemanticModel, name: str, anchor_file: Optional[str] = None) -> TypeDefinition:
    """
    Sibling modules are separate namespaces: a type defined in anchor_file wins, then a type anchor_file imports
    under that name. Without either, the name must be unique across the loaded modules.
    """
    if anchor_file:
        visible = model.find_visible_type(anchor_file, name)
        if visible is not None:
            return visible
    candidates = model.find_by_name(name)
    if not candidates:
        raise TypeNotFound(f"type {name!r} not found", name)
    if len(candidates) > 1:
        raise AmbiguousTypeName(name, candidates)
    return candidates[0]


def find_type_by_position(model: SemanticModel, anchor_file: Optional[str], anchor_line: int) -> TypeDefinition:
    if not anchor_file:
        raise TypeNotFound("failed to determine type: no type name or input file given")
    following = model.find_in_file_after_line(anchor_file, anchor_line)
    if not following:
        raise TypeNotFound(f"failed to determine type: no declaration at or after {normalize_path(anchor_file)}:{anchor_line}")

    nearest_line = min(d.position.line for d in following)
    nearest = [d for d in following if d.position.line == nearest_line]
    for definition in nearest:
        if definition.kind is DefinitionKind.TYPE:
            return definition
    raise AmbiguousAnchor(nearest[0])
