"""
output_sink.py
Opens the destination for generated code: a file, or one of the two standard streams.
"""
import os
import sys
from contextlib import contextmanager
from typing import Iterator, TextIO

from identifier_allocator import snake_case_name

STDOUT = "<STDOUT>"
STDERR = "<STDERR>"


def default_output_file_name(type_name: str, directory: str = "") -> str:
    return os.path.join(directory, f"{snake_case_name(type_name)}_enum.py")


@contextmanager
def open_output_file(name: str) -> Iterator[TextIO]:
    """
    Yields a writable text stream for name. The standard streams are flushed but never closed; any other name
    is created (or truncated) and closed when the block exits.
    """
    if name == STDOUT:
        yield sys.stdout
        sys.stdout.flush()
    elif name == STDERR:
        yield sys.stderr
        sys.stderr.flush()
    else:
        with open(name, "w", encoding="utf-8", newline="\n") as f:
            yield f


def write_unit(unit, name: str) -> None:
    with open_output_file(name) as out:
        out.write(unit.text)
