"""
constant_collector.py
Gathers every constant declared with the target type, checks that they share one value kind and puts them in
canonical (source file, source offset) order.
"""
import sys

from enum_model import ConstantDecl, OrderedConstantGroup, TypeDecl
from enumerator_errors import EmptyEnum, MixedKindInvariantViolation, UnsupportedBaseType
from semantic_model import SemanticModel

PLACEHOLDER_NAME = "_"


def collect(model: SemanticModel, target: TypeDecl, verbose: bool = False) -> OrderedConstantGroup:
    definition = model.type_definition_for(target)
    if definition is not None and definition.underlying is None:
        # generated code compares constants against int or str literals
        raise UnsupportedBaseType(target, definition.base)

    retained = []
    kind = None
    for constant in model.constants_of_type(target):
        if constant.name == PLACEHOLDER_NAME:
            continue
        decl = ConstantDecl(constant.name, constant.value, constant.position.file, constant.position.offset, constant.module)
        if decl.kind is None:
            # float, bytes, bool and other literals have no uniform representation in generated code
            raise MixedKindInvariantViolation(target, constant.name, constant.position, kind, type(constant.value).__name__)
        if kind is None:
            kind = decl.kind
        elif decl.kind is not kind:
            # a group that cannot be represented uniformly is never partially generated
            raise MixedKindInvariantViolation(target, constant.name, constant.position, kind, decl.kind)
        retained.append(decl)

    if not retained:
        raise EmptyEnum(target)

    # Sort by where the constants show up in source to keep regenerated code stable under version control.
    # The name breaks ties between constants reported at the same position.
    retained.sort(key=ConstantDecl.sort_key)

    type_module = definition.module if definition is not None else None
    group = OrderedConstantGroup(target, kind, retained, type_module)
    if verbose:
        print(f"DEBUG: Collected {len(group)} {kind.value} constant(s) of type {target.name}: {', '.join(group.names())}", file=sys.stderr)
    return group
