"""
identifier_allocator.py
Produces identifiers for generated code that are neither Python keywords nor already in use.
"""
import keyword
import re
from typing import Iterable

ESCAPE_PREFIX = "_"


def allocate(base: str, reserved: Iterable[str] = ()) -> str:
    """
    Returns base, or base with ESCAPE_PREFIX prepended as many times as needed so that the result is not a
    keyword and not in reserved. Each retry makes the candidate longer, so this always terminates.
    """
    reserved = set(reserved)
    candidate = base
    while keyword.iskeyword(candidate) or candidate in reserved:
        candidate = ESCAPE_PREFIX + candidate
    return candidate


def allocate_all(bases: Iterable[str], reserved: Iterable[str] = ()) -> dict:
    """Allocates each base in turn, so that later names also avoid the ones allocated before them."""
    used = set(reserved)
    allocated = {}
    for base in bases:
        name = allocate(base, used)
        allocated[base] = name
        used.add(name)
    return allocated


def unexported_name(name: str) -> str:
    if not name:
        raise ValueError("name is empty")
    return name[0].lower() + name[1:]


def default_receiver_name(type_name: str) -> str:
    return unexported_name(type_name[0])


_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')


def snake_case_name(name: str) -> str:
    """StrKind -> str_kind, HTTPStatus -> http_status."""
    return _CAMEL_BOUNDARY.sub('_', name).lower()
