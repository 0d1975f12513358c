#!/usr/bin/env python3
"""
Enumerator

This script generates enum-like helper code for Python constants. Given a named type and the module-level
constants declared with that type, it writes a module with functions to render, scan, iterate, check and
JSON encode/decode values of the type.

By default the type is the first declaration at or after the line given by --line (or $ENUMERATOR_LINE), so a
marker comment can sit right above the type:

    # enumerator
    class Kind(int):
        pass

    Kind1 = Kind(0)
    Kind2 = Kind(1)

Usage:
    python enumerator.py --input <input_file> [--output <output_file>] [--pkg <import_prefix>] [--type <type>] [--receiver <name>] [--verbose] [--help]

Arguments:
    --input, -i     : Input file to scan (default: $ENUMERATOR_FILE)
    --output, -o    : Output file to create (default: <type>_enum.py next to the input file)
                      As special cases, <STDOUT> and <STDERR> write to standard output or standard error
    --pkg, -p       : Package the generated module imports the constants from, "." for relative imports
                      (default: $ENUMERATOR_PACKAGE, else "." if the input directory is a package)
    --type, -t      : Type name to generate code for (default: the type following --line)
    --receiver, -r  : Parameter name of the generated functions (default: first letter of the type)
    --line, -l      : Line to search for the type from when --type is not given (default: $ENUMERATOR_LINE)
    --verbose, -v   : Print debug information on stderr (default: $ENUMERATOR_VERBOSE)
    --help, -h      : Show this help message

Example:
    python enumerator.py --input example.py --output kind_enum.py --type Kind --receiver k
    python enumerator.py --input example.py --line 3 --output "<STDOUT>"
"""

import argparse
import os
import sys
from typing import List, Optional, Tuple

from constant_collector import collect
from enum_model import GeneratedUnit, OrderedConstantGroup, TypeDecl
from enumerator_errors import EnumeratorError
from generators.python_enum_generator import generate_enum_code
from identifier_allocator import allocate, default_receiver_name
from output_sink import default_output_file_name, write_unit
from python_source_loader import load_python_sources
from semantic_model import SemanticModel
from type_locator import locate

PROGRAM_NAME = "enumerator"
TRUTHY = {"1", "true", "yes", "on"}


class EnumGenerator:
    """
    Runs one generation pass: load the sources, locate the type, collect its constants and generate the module.
    Nothing is written until generation has succeeded.
    """

    def __init__(self, input_file: str, type_name: Optional[str] = None, line: int = 0, receiver: Optional[str] = None,
                 import_prefix: Optional[str] = None, command: str = PROGRAM_NAME, verbose: bool = False):
        self.input_file = input_file
        self.type_name = type_name
        self.line = line
        self.receiver = receiver
        self.import_prefix = import_prefix
        self.command = command
        self.verbose = verbose
        self.model: Optional[SemanticModel] = None
        self.type_decl: Optional[TypeDecl] = None
        self.group: Optional[OrderedConstantGroup] = None

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(message, file=sys.stderr)

    def load(self) -> SemanticModel:
        self.model = load_python_sources(self.input_file, self.verbose)
        return self.model

    def locate_type(self) -> TypeDecl:
        self.type_decl = locate(self.model, self.type_name, self.input_file, self.line, self.verbose)
        return self.type_decl

    def collect_constants(self) -> OrderedConstantGroup:
        self.group = collect(self.model, self.type_decl, self.verbose)
        return self.group

    def resolve_import_prefix(self) -> str:
        if self.import_prefix is not None:
            return self.import_prefix
        directory = os.path.dirname(os.path.abspath(self.input_file))
        if os.path.isfile(os.path.join(directory, "__init__.py")):
            return "."
        return ""

    def generate(self) -> GeneratedUnit:
        self.load()
        self.locate_type()
        self.collect_constants()
        receiver = allocate(self.receiver or default_receiver_name(self.type_decl.name))
        self.debug_print(f"DEBUG: Generating {self.type_decl.name} helpers with receiver {receiver!r}")
        return generate_enum_code(self.group, receiver, self.command, self.resolve_import_prefix())


def resolve_parameter_value(value, env: Optional[str]) -> Tuple[Optional[str], bool]:
    """
    Returns the flag value if the user passed one. Otherwise, if env is not empty, the value of the environment
    variable named env. The boolean tells whether a value was found.
    """
    if value is not None:
        return str(value), True
    if env and env in os.environ:
        return os.environ[env], True
    return None, False


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="Generate enum-like code for Python constants",
        epilog="Example: enumerator --input example.py --output kind_enum.py --type Kind --receiver k",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument('--input', '-i', help='Input file to scan. Defaults to $ENUMERATOR_FILE')
    parser.add_argument('--output', '-o', help='Output file to create. Defaults to <type>_enum.py next to the input file.\n'
                                               'As special cases, <STDOUT> or <STDERR> write to standard output or standard error')
    parser.add_argument('--pkg', '-p', help='Package to import the constants from in generated code ("." for relative imports).\n'
                                            'Defaults to $ENUMERATOR_PACKAGE')
    parser.add_argument('--type', '-t', help='Type name to generate code for. If not given, the type following --line in the input file is used')
    parser.add_argument('--receiver', '-r', help='Parameter name of the generated functions. Defaults to the first letter of the type')
    parser.add_argument('--line', '-l', help=argparse.SUPPRESS)
    parser.add_argument('--verbose', '-v', action='store_true', default=None, help='Print debug information on stderr')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = parse_arguments(argv)

    verbose_value, _ = resolve_parameter_value(args.verbose, 'ENUMERATOR_VERBOSE')
    verbose = bool(verbose_value) and verbose_value.strip().lower() in TRUTHY

    try:
        input_file, ok = resolve_parameter_value(args.input, 'ENUMERATOR_FILE')
        if not ok or not input_file:
            raise EnumeratorError("failed to determine input file")

        import_prefix, _ = resolve_parameter_value(args.pkg, 'ENUMERATOR_PACKAGE')

        line = 0
        line_value, _ = resolve_parameter_value(args.line, 'ENUMERATOR_LINE')
        if line_value:
            try:
                line = int(line_value)
            except ValueError as e:
                raise EnumeratorError(f"failed to determine source line: {line_value!r} is not a number") from e

        command = " ".join([PROGRAM_NAME] + list(argv))
        generator = EnumGenerator(input_file, args.type, line, args.receiver, import_prefix, command, verbose)
        unit = generator.generate()

        output_file = args.output
        if not output_file:
            output_file = default_output_file_name(unit.type_decl.name, os.path.dirname(input_file))
        write_unit(unit, output_file)
    except EnumeratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if verbose:
        print(f"Generated {unit.type_decl.name} helpers in {output_file}.", file=sys.stderr)
    return 0


if __name__ == '__main__':
    sys.exit(main())
