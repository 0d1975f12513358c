"""
Python generator for OrderedConstantGroup.
Outputs a module of helper functions for one enum-like group: rendering to text and bytes, membership, scanning,
cyclic iteration, a check that the constants still have the values they were generated from, and JSON string
encoding and decoding.
"""
from typing import Dict, List

from enum_model import GeneratedUnit, OrderedConstantGroup, ValueKind
from enumerator_errors import MixedKindInvariantViolation
from generators.generator_utils import (
    bytes_literal,
    difference_literal,
    docstring_lines,
    import_line,
    module_import_path,
    string_literal,
    tuple_literal,
    value_literal,
)
from identifier_allocator import allocate, allocate_all, snake_case_name

RUNTIME_MODULE = "enumerator_runtime"
RUNTIME_NAMES = ["DecodeMismatch", "UnknownLiteral", "read_token"]
USED_BUILTINS = ["bool", "bytes", "len", "ord", "str"]
FUNCTION_SUFFIXES = ["string", "bytes", "defined", "scan", "next", "marshal_json", "unmarshal_json"]
LOCAL_NAMES = ["token", "stream", "x"]
MAX_IMPORT_LINE = 99


class EnumCodeNames:
    """
    Every identifier the generated module uses. Module-level names are allocated first so that the local names
    inside function bodies can avoid all of them.
    """
    def __init__(self, group: OrderedConstantGroup, receiver: str):
        self.type_name = group.type_decl.name
        used = set()

        self.type_ref = allocate(self.type_name, used)
        used.add(self.type_ref)

        # constants are referenced by their own names unless two modules define the same name
        self.constant_refs: Dict[tuple, str] = {}
        for constant in group:
            key = (constant.module, constant.name)
            if key in self.constant_refs:
                continue
            ref = allocate(constant.name, used)
            self.constant_refs[key] = ref
            used.add(ref)

        self.text_io = allocate("TextIO", used)
        used.add(self.text_io)
        self.runtime: Dict[str, str] = {}
        for name in RUNTIME_NAMES:
            self.runtime[name] = allocate(name, used)
            used.add(self.runtime[name])

        # builtins shadowed by an imported name are reached through the builtins module
        self.builtins_module = None
        self.builtins: Dict[str, str] = {}
        if any(b in used for b in USED_BUILTINS):
            self.builtins_module = allocate("builtins", used)
            used.add(self.builtins_module)
        for name in USED_BUILTINS:
            if name in used:
                self.builtins[name] = f"{self.builtins_module}.{name}"
            else:
                self.builtins[name] = name
                used.add(name)

        prefix = snake_case_name(self.type_name)
        drift_guard = f"_check_{prefix}_constants"
        allocated = allocate_all([f"{prefix}_{suffix}" for suffix in FUNCTION_SUFFIXES] + [drift_guard], used)
        self.functions: Dict[str, str] = {suffix: allocated[f"{prefix}_{suffix}"] for suffix in FUNCTION_SUFFIXES}
        self.drift_guard = allocated[drift_guard]
        used.update(allocated.values())

        self.receiver = allocate(receiver, used)
        used.add(self.receiver)
        helpers = allocate_all(LOCAL_NAMES, used)
        self.token = helpers["token"]
        self.stream = helpers["stream"]
        self.x = helpers["x"]

    def ref(self, constant) -> str:
        return self.constant_refs[(constant.module, constant.name)]


def generate_enum_code(group: OrderedConstantGroup, receiver: str, command: str = "enumerator",
                       import_prefix: str = "") -> GeneratedUnit:
    """
    Generates the helper module for group. The output is a pure function of the arguments, so regenerating an
    unchanged group produces byte-identical text.
    """
    _check_group(group)
    names = EnumCodeNames(group, receiver)

    lines = [f"# Code generated by {string_literal(command)}; DO NOT EDIT.", ""]
    lines.extend(generate_imports(group, names, import_prefix))

    for generate in (
        generate_string_function,
        generate_bytes_function,
        generate_defined_function,
        generate_scan_function,
        generate_next_function,
        generate_drift_guard,
        generate_marshal_json_function,
        generate_unmarshal_json_function,
    ):
        lines.append("")
        lines.append("")
        generate(lines, group, names)

    return GeneratedUnit(group.type_decl, "\n".join(lines) + "\n")


def _check_group(group: OrderedConstantGroup) -> None:
    if group.kind not in (ValueKind.INTEGER, ValueKind.TEXT):
        raise ValueError(f"unsupported value kind {group.kind!r} for type {group.type_decl.name}")
    if not group.constants:
        raise ValueError(f"no constants to generate for type {group.type_decl.name}")
    for constant in group:
        if constant.kind is not group.kind:
            raise MixedKindInvariantViolation(group.type_decl, constant.name, f"{constant.source_file}@{constant.source_offset}", group.kind, constant.kind)


def generate_imports(group: OrderedConstantGroup, names: EnumCodeNames, import_prefix: str) -> List[str]:
    lines = []
    if names.builtins_module:
        lines.append("import builtins" if names.builtins_module == "builtins" else f"import builtins as {names.builtins_module}")
    lines.append(import_line("typing", [("TextIO", names.text_io)]))
    lines.append("")

    imports: Dict[str, set] = {}
    imports[RUNTIME_MODULE] = {(name, names.runtime[name]) for name in RUNTIME_NAMES}
    if group.type_module:
        imports.setdefault(module_import_path(group.type_module, import_prefix), set()).add((names.type_name, names.type_ref))
    for constant in group:
        path = module_import_path(constant.module, import_prefix)
        imports.setdefault(path, set()).add((constant.name, names.ref(constant)))

    # relative imports sort after absolute ones
    for path in sorted(imports, key=lambda p: (p.startswith("."), p)):
        entries = sorted(imports[path])
        line = import_line(path, entries)
        if len(line) <= MAX_IMPORT_LINE:
            lines.append(line)
            continue
        lines.append(f"from {path} import (")
        for name, alias in entries:
            lines.append(f"    {name}," if name == alias else f"    {name} as {alias},")
        lines.append(")")
    return lines


def generate_string_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    r = names.receiver
    fn = names.functions
    lines.append(f"def {fn['string']}({r}: {names.type_ref}) -> {names.builtins['str']}:")
    lines.extend(docstring_lines(
        f"{fn['string']} returns the text form of {r}. If not {fn['defined']}({r}), then a generated string\n"
        f"is returned based on {r}'s value."
    ))
    if group.kind is ValueKind.TEXT:
        lines.append(f"    return {names.builtins['str']}({r})")
        return
    for constant in group:
        lines.append(f"    if {r} == {names.ref(constant)}:")
        lines.append(f"        return {string_literal(constant.name)}")
    lines.append(f"    return {string_literal(names.type_name + '(%d)')} % {r}")


def generate_bytes_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    r = names.receiver
    fn = names.functions
    lines.append(f"def {fn['bytes']}({r}: {names.type_ref}) -> {names.builtins['bytes']}:")
    lines.extend(docstring_lines(
        f"{fn['bytes']} returns a byte-level representation of {fn['string']}({r}). If not {fn['defined']}({r}),\n"
        f"then a generated string is returned based on {r}'s value."
    ))
    if group.kind is ValueKind.TEXT:
        lines.append(f"    return {names.builtins['str']}({r}).encode(\"utf-8\")")
        return
    for constant in group:
        lines.append(f"    if {r} == {names.ref(constant)}:")
        lines.append(f"        return {bytes_literal(constant.name.encode('utf-8'))}")
    lines.append(f"    return ({string_literal(names.type_name + '(%d)')} % {r}).encode(\"utf-8\")")


def generate_defined_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    r = names.receiver
    lines.append(f"def {names.functions['defined']}({r}: {names.type_ref}) -> {names.builtins['bool']}:")
    lines.extend(docstring_lines(f"{names.functions['defined']} returns True if {r} holds a defined value."))
    literals = []
    for constant in group:
        literal = value_literal(constant.literal_value)
        if literal not in literals:
            literals.append(literal)
    lines.append(f"    return {r} in {tuple_literal(literals)}")


def _token_cases(group: OrderedConstantGroup) -> List[tuple]:
    """
    (text, constant) pairs a scanned or decoded token is matched against, in order. Names come first; text
    groups also accept a literal value that differs from every name, so that scanning what
    the string function rendered gives the constant back.
    """
    cases = [(c.name, c) for c in group]
    if group.kind is ValueKind.TEXT:
        taken = {c.name for c in group}
        for constant in group:
            if constant.literal_value not in taken:
                cases.append((constant.literal_value, constant))
                taken.add(constant.literal_value)
    return cases


def generate_scan_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    fn = names.functions
    lines.append(f"def {fn['scan']}({names.stream}: {names.text_io}) -> {names.type_ref}:")
    lines.extend(docstring_lines(
        f"{fn['scan']} reads one whitespace-delimited token from {names.stream} and returns the {names.type_name} it names.\n"
        f"UnknownLiteral is raised if the token does not name a {names.type_name}; errors reading the token propagate."
    ))
    lines.append(f"    {names.token} = {names.runtime['read_token']}({names.stream})")
    for text, constant in _token_cases(group):
        lines.append(f"    if {names.token} == {string_literal(text)}:")
        lines.append(f"        return {names.ref(constant)}")
    lines.append(f"    raise {names.runtime['UnknownLiteral']}({string_literal(names.type_name)}, {names.token})")


def generate_next_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    r = names.receiver
    fn = names.functions
    first = names.ref(group.first)
    lines.append(f"def {fn['next']}({r}: {names.type_ref}) -> {names.type_ref}:")
    lines.extend(docstring_lines(
        f"{fn['next']} returns the next defined {names.type_name}. If {r} is not defined, then {fn['next']} returns the\n"
        f"first defined value. {fn['next']} can be used to loop through all values of an enum.\n"
        f"\n"
        f"    {r} = {first}\n"
        f"    while True:\n"
        f"        print({fn['string']}({r}))\n"
        f"        {r} = {fn['next']}({r})\n"
        f"        if {r} == {first}:\n"
        f"            break\n"
        f"\n"
        f"The exact order that values are returned when looping should not be relied upon."
    ))
    for index, constant in enumerate(group.constants):
        lines.append(f"    if {r} == {names.ref(constant)}:")
        lines.append(f"        return {names.ref(group.successor(index))}")
    lines.append(f"    return {first}")


def generate_drift_guard(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    x = names.x
    lines.append(f"def {names.drift_guard}() -> None:")
    lines.append(f"    {x} = {{0: None}}")
    lines.append("    # A KeyError here signifies that the constant values have changed.")
    lines.append("    # Re-run the enumerator command to generate them again.")
    for constant in group:
        ref = names.ref(constant)
        if group.kind is ValueKind.TEXT:
            value = constant.literal_value
            lines.append(f"    # Begin {string_literal(value)}")
            lines.append(f"    _ = {x}[{difference_literal(names.builtins['len'] + '(' + ref + ')', len(value))}]")
            for index, ch in enumerate(value):
                lines.append(f"    _ = {x}[{difference_literal(names.builtins['ord'] + '(' + ref + '[' + str(index) + '])', ord(ch))}]")
        else:
            lines.append(f"    _ = {x}[{difference_literal(ref, constant.literal_value)}]")
    lines.append("")
    lines.append("")
    lines.append(f"{names.drift_guard}()")


def generate_marshal_json_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    r = names.receiver
    fn = names.functions
    lines.append(f"def {fn['marshal_json']}({r}: {names.type_ref}) -> {names.builtins['bytes']}:")
    lines.extend(docstring_lines(f"{fn['marshal_json']} returns {r} encoded as a JSON string."))
    lines.append(f"    {names.x} = {fn['bytes']}({r})")
    lines.append(f"    return b'\"' + {names.x} + b'\"'")


def generate_unmarshal_json_function(lines: List[str], group: OrderedConstantGroup, names: EnumCodeNames) -> None:
    x = names.x
    fn = names.functions
    lines.append(f"def {fn['unmarshal_json']}({x}: {names.builtins['bytes']}) -> {names.type_ref}:")
    lines.extend(docstring_lines(
        f"{fn['unmarshal_json']} parses a JSON string produced by {fn['marshal_json']}.\n"
        f"DecodeMismatch is raised if {x} does not hold a defined {names.type_name}."
    ))
    for text, constant in _token_cases(group):
        quoted = b'"' + text.encode("utf-8") + b'"'
        lines.append(f"    if {x} == {bytes_literal(quoted)}:")
        lines.append(f"        return {names.ref(constant)}")
    lines.append(f"    raise {names.runtime['DecodeMismatch']}({x}, {string_literal(names.type_name)})")
