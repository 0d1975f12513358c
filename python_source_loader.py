# python_source_loader.py
# Reads a Python module and its sibling modules and builds the SemanticModel the locator and collector query.
import ast
import os
import sys
from typing import Dict, List, Optional, Tuple

from enum_model import ValueKind
from enumerator_errors import SourceLoadError
from semantic_model import (
    ConstantDefinition,
    FunctionDefinition,
    SemanticModel,
    SourcePosition,
    TypeDefinition,
    VariableDefinition,
    normalize_path,
)

BUILTIN_CONVERSIONS = {'int': int, 'str': str}
FINAL_WRAPPERS = {'Final', 'ClassVar'}


class NotConstant(Exception):
    """Raised while folding an expression that has no compile-time value."""


def load_python_sources(input_file: str, verbose: bool = False) -> SemanticModel:
    return PythonSourceLoader(verbose).load(input_file)


class ModuleScan:
    """Everything known about one parsed module while the model is being built."""

    def __init__(self, file: str, stem: str, source: bytes, tree: ast.Module):
        self.file = file
        self.stem = stem
        self.source = source
        self.tree = tree
        self.line_starts = _line_starts(source)
        self.types: Dict[str, TypeDefinition] = {}
        self.type_bases: Dict[str, List[ast.AST]] = {}  # base expressions of each class or NewType
        self.functions: List[FunctionDefinition] = []
        self.variables: List[VariableDefinition] = []
        self.constants: Dict[str, ConstantDefinition] = {}
        self.name_imports: Dict[str, Tuple[str, str]] = {}  # local name -> (module stem, imported name)
        self.module_imports: Dict[str, str] = {}  # local name -> module stem
        self.rebound: set = set()
        self.constants_done = False
        self.constants_in_progress = False

    def position(self, node: ast.AST) -> SourcePosition:
        offset = self.line_starts[node.lineno - 1] + node.col_offset
        return SourcePosition(self.file, node.lineno, offset)


def _line_starts(source: bytes) -> List[int]:
    starts = [0]
    for index, byte in enumerate(source):
        if byte == 0x0A:
            starts.append(index + 1)
    return starts


def _dotted_parts(node: ast.AST) -> Optional[List[str]]:
    parts = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return list(reversed(parts))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _assigned_names(target: ast.AST) -> List[ast.Name]:
    if isinstance(target, ast.Name):
        return [target]
    if isinstance(target, (ast.Tuple, ast.List)):
        names = []
        for element in target.elts:
            names.extend(_assigned_names(element))
        return names
    if isinstance(target, ast.Starred):
        return _assigned_names(target.value)
    return []


class PythonSourceLoader:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.modules: Dict[str, ModuleScan] = {}

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(message, file=sys.stderr)

    def load(self, input_file: str) -> SemanticModel:
        input_path = normalize_path(input_file)
        if not os.path.isfile(input_path):
            raise SourceLoadError(input_file, "no such file")
        directory = os.path.dirname(input_path)
        siblings = sorted(
            normalize_path(os.path.join(directory, name))
            for name in os.listdir(directory)
            if name.endswith('.py')
        )
        if input_path not in siblings:
            siblings.append(input_path)
        self.debug_print(f"DEBUG: Loading {len(siblings)} module(s) from {directory}")

        for path in siblings:
            try:
                scan = self._parse(path)
            except SourceLoadError as e:
                if path == input_path:
                    raise
                print(f"Warning: skipping {path}: {e.reason}", file=sys.stderr)
                continue
            self.modules[scan.stem] = scan

        for scan in self.modules.values():
            self._scan_declarations(scan)
        imported_types = {}
        for scan in self.modules.values():
            for name, definition in scan.types.items():
                definition.underlying = self._underlying_type(scan, name, set())
            for local in scan.name_imports:
                definition = self._resolve_type_name(scan, local)
                if definition is not None:
                    imported_types[(scan.file, local)] = definition
        for scan in self.modules.values():
            self._scan_constants(scan)

        types, constants, others = [], [], []
        for scan in self.modules.values():
            types.extend(scan.types.values())
            constants.extend(scan.constants.values())
            others.extend(scan.functions)
            others.extend(scan.variables)
        self.debug_print(f"DEBUG: Found {len(types)} type(s), {len(constants)} constant(s), {len(others)} other definition(s)")
        return SemanticModel(types, constants, others, files=[s.file for s in self.modules.values()],
                             imported_types=imported_types)

    def _parse(self, path: str) -> ModuleScan:
        try:
            with open(path, 'rb') as f:
                source = f.read()
        except OSError as e:
            raise SourceLoadError(path, e.strerror or str(e)) from e
        try:
            tree = ast.parse(source, filename=path)
        except (SyntaxError, ValueError) as e:
            raise SourceLoadError(path, f"invalid Python source: {e}") from e
        stem = os.path.splitext(os.path.basename(path))[0]
        return ModuleScan(path, stem, source, tree)

    # --- first pass: types, functions, imports ---

    def _scan_declarations(self, scan: ModuleScan) -> None:
        bound_once = set()
        for stmt in scan.tree.body:
            for name in self._bound_names(stmt):
                if name in bound_once:
                    scan.rebound.add(name)
                bound_once.add(name)

        for stmt in scan.tree.body:
            if isinstance(stmt, ast.ClassDef):
                base = ast.unparse(stmt.bases[0]) if stmt.bases else None
                scan.types[stmt.name] = TypeDefinition(stmt.name, self._def_position(scan, stmt), scan.stem, base)
                scan.type_bases[stmt.name] = list(stmt.bases)
            elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                scan.functions.append(FunctionDefinition(stmt.name, self._def_position(scan, stmt), scan.stem))
            elif isinstance(stmt, ast.ImportFrom):
                self._record_import_from(scan, stmt)
            elif isinstance(stmt, ast.Import):
                for alias in stmt.names:
                    parts = alias.name.split('.')
                    if alias.asname:
                        scan.module_imports[alias.asname] = parts[-1]
                    elif len(parts) == 1:
                        scan.module_imports[parts[0]] = parts[0]
            elif isinstance(stmt, ast.Assign) and len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name):
                new_type = self._new_type_base(stmt.value)
                if new_type is not None:
                    target = stmt.targets[0]
                    scan.types[target.id] = TypeDefinition(target.id, scan.position(target), scan.stem, new_type)
                    scan.type_bases[target.id] = [stmt.value.args[1]]

    def _def_position(self, scan: ModuleScan, stmt: ast.AST) -> SourcePosition:
        # the position of a class or def is its name, which follows the keyword on the statement's first line
        line = stmt.lineno
        line_start = scan.line_starts[line - 1]
        line_end = scan.line_starts[line] if line < len(scan.line_starts) else len(scan.source)
        text = scan.source[line_start:line_end]
        keyword = b'class' if isinstance(stmt, ast.ClassDef) else b'def'
        keyword_at = text.find(keyword, stmt.col_offset)
        column = text.find(stmt.name.encode('utf-8'), keyword_at + len(keyword)) if keyword_at >= 0 else -1
        if column < 0:
            column = stmt.col_offset
        return SourcePosition(scan.file, line, line_start + column)

    def _bound_names(self, stmt: ast.stmt) -> List[str]:
        if isinstance(stmt, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            return [stmt.name]
        if isinstance(stmt, ast.Assign):
            return [n.id for target in stmt.targets for n in _assigned_names(target)]
        if isinstance(stmt, (ast.AnnAssign, ast.AugAssign)) and isinstance(stmt.target, ast.Name):
            if isinstance(stmt, ast.AnnAssign) and stmt.value is None:
                return []
            return [stmt.target.id]
        if isinstance(stmt, (ast.For, ast.AsyncFor)):
            return [n.id for n in _assigned_names(stmt.target)]
        return []

    def _record_import_from(self, scan: ModuleScan, stmt: ast.ImportFrom) -> None:
        if stmt.level > 1:
            return
        module = stmt.module.split('.')[-1] if stmt.module else None
        for alias in stmt.names:
            local = alias.asname or alias.name
            if module is None:
                # "from . import x": x is a sibling module or a name defined in the package's __init__
                if alias.name in self.modules:
                    scan.module_imports[local] = alias.name
                else:
                    scan.name_imports[local] = ('__init__', alias.name)
            elif module in self.modules:
                scan.name_imports[local] = (module, alias.name)

    def _new_type_base(self, value: ast.AST) -> Optional[str]:
        if not isinstance(value, ast.Call) or len(value.args) != 2:
            return None
        parts = _dotted_parts(value.func)
        if not parts or parts[-1] != 'NewType':
            return None
        return ast.unparse(value.args[1])

    # --- name resolution ---

    def resolve_type(self, scan: ModuleScan, node: ast.AST, seen=None) -> Optional[TypeDefinition]:
        parts = _dotted_parts(node)
        if parts is None:
            return None
        if len(parts) == 1:
            return self._resolve_type_name(scan, parts[0], seen)
        if len(parts) == 2 and parts[0] in scan.module_imports:
            target = self.modules.get(scan.module_imports[parts[0]])
            if target is not None:
                return self._resolve_type_name(target, parts[1], seen)
        return None

    def _resolve_type_name(self, scan: ModuleScan, name: str, seen=None) -> Optional[TypeDefinition]:
        if name in scan.types and name not in scan.rebound:
            return scan.types[name]
        if name in scan.name_imports:
            seen = seen or set()
            key = (scan.stem, name)
            if key in seen:
                return None
            seen.add(key)
            stem, imported = scan.name_imports[name]
            target = self.modules.get(stem)
            if target is not None:
                return self._resolve_type_name(target, imported, seen)
        return None

    def _underlying_type(self, scan: ModuleScan, name: str, seen: set) -> Optional[str]:
        """Follows the bases of a class or NewType through other named types down to int or str."""
        key = (scan.stem, name)
        if key in seen:
            return None
        seen.add(key)
        for base in scan.type_bases.get(name, []):
            parts = _dotted_parts(base)
            if parts is None:
                continue
            definition = self.resolve_type(scan, base)
            if definition is not None:
                owner = self.modules.get(definition.module)
                underlying = self._underlying_type(owner, definition.name, seen) if owner is not None else None
            elif parts[-1] in BUILTIN_CONVERSIONS and parts[:-1] in ([], ['builtins']):
                underlying = parts[-1]
            else:
                underlying = None
            if underlying is not None:
                return underlying
        return None

    def _resolve_constant(self, scan: ModuleScan, parts: List[str]) -> Optional[ConstantDefinition]:
        if len(parts) == 1:
            name = parts[0]
            if name in scan.constants:
                return scan.constants[name]
            if name in scan.name_imports:
                stem, imported = scan.name_imports[name]
                target = self.modules.get(stem)
                if target is not None and target is not scan:
                    self._scan_constants(target)
                    return self._resolve_constant(target, [imported])
            return None
        if len(parts) == 2 and parts[0] in scan.module_imports:
            target = self.modules.get(scan.module_imports[parts[0]])
            if target is not None and target is not scan:
                self._scan_constants(target)
                return target.constants.get(parts[1])
        return None

    def _annotation_type(self, scan: ModuleScan, annotation: ast.AST) -> Tuple[bool, Optional[TypeDefinition]]:
        """
        Returns (usable, type). usable is False for annotations that carry no type, such as a bare Final,
        in which case the declared type is taken from the value instead.
        """
        if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
            try:
                annotation = ast.parse(annotation.value, mode='eval').body
            except SyntaxError:
                return True, None
        if isinstance(annotation, ast.Subscript):
            parts = _dotted_parts(annotation.value)
            if parts and parts[-1] in FINAL_WRAPPERS:
                return self._annotation_type(scan, annotation.slice)
            return True, None
        parts = _dotted_parts(annotation)
        if parts and parts[-1] in FINAL_WRAPPERS:
            return False, None
        return True, self.resolve_type(scan, annotation)

    # --- second pass: constants ---

    def _scan_constants(self, scan: ModuleScan) -> None:
        if scan.constants_done or scan.constants_in_progress:
            return
        scan.constants_in_progress = True
        for stmt in scan.tree.body:
            if isinstance(stmt, ast.Assign):
                if any(t.id in scan.types for t in stmt.targets if isinstance(t, ast.Name)) and self._new_type_base(stmt.value) is not None:
                    continue
                for target in stmt.targets:
                    self._bind(scan, target, stmt.value, None)
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                if stmt.value is None:
                    continue
                usable, declared = self._annotation_type(scan, stmt.annotation)
                self._bind(scan, stmt.target, stmt.value, declared if usable else None, annotated=usable)
            elif isinstance(stmt, ast.AugAssign) and isinstance(stmt.target, ast.Name):
                scan.variables.append(VariableDefinition(stmt.target.id, scan.position(stmt.target), scan.stem))
        scan.constants_in_progress = False
        scan.constants_done = True

    def _bind(self, scan: ModuleScan, target: ast.AST, value: ast.AST, declared: Optional[TypeDefinition], annotated: bool = False) -> None:
        if isinstance(target, (ast.Tuple, ast.List)):
            elements = self._unpack(scan, value, len(target.elts))
            for index, element in enumerate(target.elts):
                if elements is None or isinstance(element, ast.Starred):
                    for name in _assigned_names(element):
                        scan.variables.append(VariableDefinition(name.id, scan.position(name), scan.stem))
                    continue
                self._bind_unpacked(scan, element, elements[index])
            return
        if not isinstance(target, ast.Name):
            return
        if not annotated:
            declared = self._infer_type(scan, value)
        try:
            folded = self._fold(scan, value)
        except NotConstant:
            folded = None
        self._define(scan, target, folded, declared)

    def _bind_unpacked(self, scan: ModuleScan, target: ast.AST, element) -> None:
        # element is either an ast node or an already folded (value, type) pair
        if isinstance(element, tuple):
            if isinstance(target, ast.Name):
                self._define(scan, target, element[0], element[1])
            else:
                for name in _assigned_names(target):
                    scan.variables.append(VariableDefinition(name.id, scan.position(name), scan.stem))
            return
        self._bind(scan, target, element, None)

    def _define(self, scan: ModuleScan, target: ast.Name, value, declared: Optional[TypeDefinition]) -> None:
        position = scan.position(target)
        name = target.id
        # a typed literal of an unsupported kind is kept so the collector can reject the group
        if name in scan.rebound or value is None or (ValueKind.of(value) is None and declared is None):
            self.debug_print(f"DEBUG: {scan.stem}.{name} is not a constant")
            scan.variables.append(VariableDefinition(name, position, scan.stem))
            return
        self.debug_print(f"DEBUG: {scan.stem}.{name} = {value!r} (type {declared.name if declared else None})")
        scan.constants[name] = ConstantDefinition(name, position, value, declared, scan.stem)

    def _unpack(self, scan: ModuleScan, value: ast.AST, count: int):
        if isinstance(value, (ast.Tuple, ast.List)):
            if len(value.elts) != count or any(isinstance(e, ast.Starred) for e in value.elts):
                return None
            return list(value.elts)
        # map(Kind, range(...)) is the closest thing Python has to iota
        if isinstance(value, ast.Call) and isinstance(value.func, ast.Name) and value.func.id == 'map' and len(value.args) == 2:
            converter, source = value.args
            if not (isinstance(source, ast.Call) and isinstance(source.func, ast.Name) and source.func.id == 'range'):
                return None
            try:
                bounds = [self._fold(scan, arg) for arg in source.args]
            except NotConstant:
                return None
            if not bounds or any(ValueKind.of(b) is not ValueKind.INTEGER for b in bounds) or len(bounds) > 3:
                return None
            try:
                values = list(range(*bounds))
            except ValueError:
                return None
            if len(values) != count:
                return None
            declared = self.resolve_type(scan, converter)
            if declared is None:
                parts = _dotted_parts(converter)
                if parts != ['int']:
                    return None
            return [(v, declared) for v in values]
        return None

    def _infer_type(self, scan: ModuleScan, value: ast.AST) -> Optional[TypeDefinition]:
        if isinstance(value, ast.Call) and len(value.args) == 1 and not value.keywords:
            return self.resolve_type(scan, value.func)
        parts = _dotted_parts(value)
        if parts is not None:
            # binding an existing constant keeps its type
            constant = self._resolve_constant(scan, parts)
            if constant is not None:
                return constant.declared_type
        return None

    def _fold(self, scan: ModuleScan, node: ast.AST):
        if isinstance(node, ast.Constant):
            if node.value is None or node.value is Ellipsis:
                raise NotConstant(node)
            return node.value
        if isinstance(node, (ast.Name, ast.Attribute)):
            parts = _dotted_parts(node)
            constant = self._resolve_constant(scan, parts) if parts else None
            if constant is None:
                raise NotConstant(node)
            return constant.value
        if isinstance(node, ast.UnaryOp):
            operand = self._fold(scan, node.operand)
            if not _is_number(operand):
                raise NotConstant(node)
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.UAdd):
                return +operand
            if isinstance(node.op, ast.Invert) and ValueKind.of(operand) is ValueKind.INTEGER:
                return ~operand
            raise NotConstant(node)
        if isinstance(node, ast.BinOp):
            return self._fold_binop(node, self._fold(scan, node.left), self._fold(scan, node.right))
        if isinstance(node, ast.Call) and len(node.args) == 1 and not node.keywords:
            parts = _dotted_parts(node.func)
            inner = self._fold(scan, node.args[0])
            if parts and len(parts) == 1 and parts[0] in BUILTIN_CONVERSIONS and parts[0] not in scan.types:
                if ValueKind.of(inner) is not ValueKind.of(BUILTIN_CONVERSIONS[parts[0]]()):
                    raise NotConstant(node)
                return inner
            if self.resolve_type(scan, node.func) is not None:
                return inner
        raise NotConstant(node)

    def _fold_binop(self, node: ast.BinOp, left, right):
        left_kind, right_kind = ValueKind.of(left), ValueKind.of(right)
        if left_kind is ValueKind.TEXT and right_kind is ValueKind.TEXT and isinstance(node.op, ast.Add):
            return left + right
        if not (_is_number(left) and _is_number(right)):
            raise NotConstant(node)
        integers = left_kind is ValueKind.INTEGER and right_kind is ValueKind.INTEGER
        op = node.op
        try:
            if isinstance(op, ast.Add):
                return left + right
            if isinstance(op, ast.Sub):
                return left - right
            if isinstance(op, ast.Mult):
                return left * right
            if isinstance(op, ast.Div):
                return left / right
            if isinstance(op, ast.FloorDiv):
                return left // right
            if isinstance(op, ast.Mod):
                return left % right
            if isinstance(op, ast.Pow):
                return left ** right
            if not integers:
                raise NotConstant(node)
            if isinstance(op, ast.LShift):
                return left << right
            if isinstance(op, ast.RShift):
                return left >> right
            if isinstance(op, ast.BitOr):
                return left | right
            if isinstance(op, ast.BitAnd):
                return left & right
            if isinstance(op, ast.BitXor):
                return left ^ right
        except (ZeroDivisionError, ValueError, OverflowError) as e:
            raise NotConstant(node) from e
        raise NotConstant(node)
