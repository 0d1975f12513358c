"""
enumerator_errors.py
Errors raised by the enumerator while locating a type, collecting its constants and generating code.
"""


class EnumeratorError(Exception):
    """Base class for all generator-time failures."""


class SourceLoadError(EnumeratorError):
    def __init__(self, file: str, reason: str):
        super().__init__(f"failed to load {file}: {reason}")
        self.file = file
        self.reason = reason


class TypeNotFound(EnumeratorError, LookupError):
    def __init__(self, message: str, name: str = None):
        super().__init__(message)
        self.name = name


class AmbiguousAnchor(EnumeratorError):
    """
    The nearest declaration after the anchor line is not a named type.
    The offending definition is kept so the caller can point at it.
    """
    def __init__(self, definition):
        super().__init__(
            f"failed to determine type: closest declaration is not a named type: "
            f"{definition.kind.value} {definition.name} at {definition.position}"
        )
        self.definition = definition


class EmptyEnum(EnumeratorError):
    def __init__(self, type_decl):
        super().__init__(f"no constants of type {type_decl.name!r} found")
        self.type_decl = type_decl


class MixedKindInvariantViolation(EnumeratorError):
    def __init__(self, type_decl, constant_name: str, location, expected, found):
        super().__init__(
            f"multiple constant kinds found for type {type_decl.name!r}: "
            f"{constant_name} at {location} is {getattr(found, 'value', found)}, "
            f"expected {expected.value if expected is not None else 'integer or text'}"
        )
        self.type_decl = type_decl
        self.constant_name = constant_name
        self.location = location
        self.expected = expected
        self.found = found


class AmbiguousTypeName(TypeNotFound):
    """Several modules define a type with the requested name and none of them is visible from the input module."""
    def __init__(self, name: str, definitions):
        locations = ", ".join(str(d.position) for d in definitions)
        super().__init__(f"type {name!r} is ambiguous: defined at {locations}", name)
        self.definitions = list(definitions)


class UnsupportedBaseType(EnumeratorError):
    def __init__(self, type_decl, base):
        super().__init__(
            f"type {type_decl.name!r} does not derive from int or str (base: {base or 'none'})"
        )
        self.type_decl = type_decl
        self.base = base
