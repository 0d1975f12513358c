"""
enumerator_runtime.py
Support code imported by modules that enumerator generates: reading scan tokens and the errors raised when
text or JSON input does not name a defined value.
"""
from typing import TextIO


class UnknownLiteral(ValueError):
    def __init__(self, type_name: str, token: str):
        super().__init__(f"unknown {type_name} value: {token}")
        self.type_name = type_name
        self.token = token


class DecodeMismatch(ValueError):
    def __init__(self, raw: bytes, type_name: str):
        super().__init__(f"failed to parse value {raw!r} into {type_name}")
        self.raw = raw
        self.type_name = type_name


def read_token(stream: TextIO) -> str:
    """
    Reads one whitespace-delimited token from stream.

    Leading whitespace is skipped and the whitespace character ending the token is consumed, so consecutive
    calls return consecutive tokens. EOFError is raised if the stream ends before a token starts.
    """
    ch = stream.read(1)
    while ch and ch.isspace():
        ch = stream.read(1)
    if not ch:
        raise EOFError("unexpected EOF")
    chars = []
    while ch and not ch.isspace():
        chars.append(ch)
        ch = stream.read(1)
    return ''.join(chars)
