"""
Shared utilities for code generators.
Handles Python literal formatting, import paths and docstring emission.
"""
from typing import List, Union


# --- Literals ---
def string_literal(value: str) -> str:
    """Python source for value, preferring double quotes."""
    text = repr(value)
    if text.startswith("'") and '"' not in value:
        text = '"' + text[1:-1] + '"'
    return text


def bytes_literal(value: bytes) -> str:
    text = repr(value)
    if text.startswith("b'") and b'"' not in value:
        text = 'b"' + text[2:-1] + '"'
    return text


def value_literal(value: Union[int, str]) -> str:
    if isinstance(value, str):
        return string_literal(value)
    return repr(value)


def tuple_literal(values: List[str]) -> str:
    """values are already formatted literals."""
    if len(values) == 1:
        return f"({values[0]},)"
    return "(" + ", ".join(values) + ")"


def difference_literal(name: str, value: int) -> str:
    # parenthesise negative literals so "x - -1" is never emitted
    if value < 0:
        return f"{name} - ({value})"
    return f"{name} - {value}"


# --- Imports ---
def module_import_path(module: str, import_prefix: str = "") -> str:
    """
    Dotted path used in a "from ... import" line for a module stem.
    An empty prefix imports the module by stem, "." imports it relative to the generated module, and any other
    prefix is treated as the enclosing package.
    """
    if not import_prefix:
        return module
    if import_prefix.endswith("."):
        return import_prefix + module
    return f"{import_prefix}.{module}"


def import_line(path: str, names: List[tuple]) -> str:
    """names is a list of (name, alias) pairs; alias may equal name."""
    parts = [name if name == alias else f"{name} as {alias}" for name, alias in names]
    return f"from {path} import {', '.join(parts)}"


# --- Docstrings ---
def docstring_lines(text: str, indent: str = "    ") -> List[str]:
    body = text.strip("\n").splitlines()
    if len(body) == 1:
        return [f'{indent}"""{body[0]}"""']
    lines = [f'{indent}"""']
    for line in body:
        lines.append(f"{indent}{line}" if line.strip() else "")
    lines.append(f'{indent}"""')
    return lines
