"""
Imports generated modules and checks what the helper functions do at runtime.
"""
import io
import os
import shutil
import pytest

from enumerator_runtime import DecodeMismatch, UnknownLiteral
from tests.test_utils import generate_module, import_generated_module, write_source


def rewrite_source(path, old, new):
    with open(path, encoding="utf-8") as f:
        source = f.read()
    assert old in source
    with open(path, "w", encoding="utf-8") as f:
        f.write(source.replace(old, new))
    # a same-size edit within one second would otherwise reuse stale bytecode
    shutil.rmtree(os.path.join(os.path.dirname(path), "__pycache__"), ignore_errors=True)


@pytest.fixture
def kind_module(example_dir):
    return generate_module(os.path.join(example_dir, "example.py"), "Kind")


@pytest.fixture
def str_kind_module(example_dir):
    return generate_module(os.path.join(example_dir, "example.py"), "StrKind", receiver="s")


def test_integer_scenario(kind_module):
    m = kind_module
    assert m.kind_string(m.Kind1) == "Kind1"
    assert m.kind_string(m.Kind(2)) == "Kind(2)"
    assert m.kind_defined(m.Kind(2)) is False
    assert m.kind_defined(m.Kind2) is True
    assert m.kind_next(m.Kind2) == m.Kind1


def test_integer_bytes(kind_module):
    m = kind_module
    assert m.kind_bytes(m.Kind2) == b"Kind2"
    assert m.kind_bytes(m.Kind(-7)) == b"Kind(-7)"


def test_text_scenario(str_kind_module):
    m = str_kind_module
    assert m.str_kind_string(m.Hello) == "Hello"
    assert m.str_kind_marshal_json(m.Hello) == b'"Hello"'
    stream = io.StringIO("Hello World")
    assert m.str_kind_scan(stream) == m.Hello
    assert m.str_kind_scan(stream) == m.World
    with pytest.raises(EOFError):
        m.str_kind_scan(stream)


def test_scan_rejects_unknown_tokens(kind_module):
    with pytest.raises(UnknownLiteral) as excinfo:
        kind_module.kind_scan(io.StringIO("kind1"))
    assert excinfo.value.token == "kind1"
    assert str(excinfo.value) == "unknown Kind value: kind1"


def test_unmarshal_rejects_unknown_values(kind_module):
    with pytest.raises(DecodeMismatch) as excinfo:
        kind_module.kind_unmarshal_json(b'"Kind3"')
    assert excinfo.value.type_name == "Kind"
    with pytest.raises(DecodeMismatch):
        kind_module.kind_unmarshal_json(b"Kind1")


@pytest.mark.parametrize("module_fixture, prefix, names", [
    ("kind_module", "kind", ["Kind1", "Kind2"]),
    ("str_kind_module", "str_kind", ["Hello", "World"]),
])
def test_round_trips(request, module_fixture, prefix, names):
    m = request.getfixturevalue(module_fixture)
    string, scan = getattr(m, f"{prefix}_string"), getattr(m, f"{prefix}_scan")
    marshal, unmarshal = getattr(m, f"{prefix}_marshal_json"), getattr(m, f"{prefix}_unmarshal_json")
    for name in names:
        constant = getattr(m, name)
        assert scan(io.StringIO(string(constant))) == constant
        assert unmarshal(marshal(constant)) == constant


def test_text_values_that_differ_from_names_round_trip(temp_dir):
    path = write_source(temp_dir, "colors.py", """
        class Color(str):
            pass

        RED = Color("red")
        GREEN = Color("green")
        """)
    m = generate_module(path, "Color")
    for constant in (m.RED, m.GREEN):
        assert m.color_scan(io.StringIO(m.color_string(constant))) == constant
        assert m.color_unmarshal_json(m.color_marshal_json(constant)) == constant
    assert m.color_scan(io.StringIO("RED")) == m.RED
    assert m.color_unmarshal_json(b'"GREEN"') == m.GREEN
    assert m.color_string(m.RED) == "red"
    assert m.color_defined("red") is True
    assert m.color_defined("RED") is False


def test_successor_visits_every_constant_once(temp_dir):
    path = write_source(temp_dir, "levels.py", """
        class Level(int):
            pass

        HIGH = Level(30)
        LOW = Level(10)
        MID = Level(20)
        """)
    m = generate_module(path, "Level")
    for start in (m.HIGH, m.LOW, m.MID):
        seen = [start]
        value = m.level_next(start)
        while value != start:
            seen.append(value)
            value = m.level_next(value)
        assert sorted(seen) == [10, 20, 30]
        assert len(seen) == 3
    # canonical order is source order
    assert m.level_next(m.HIGH) == m.LOW
    assert m.level_next(m.Level(99)) == m.HIGH


def test_membership(temp_dir):
    path = write_source(temp_dir, "flags.py", """
        class Flag(int):
            pass

        READ = Flag(1 << 0)
        WRITE = Flag(1 << 1)
        ALL = Flag(READ | WRITE)
        ALSO_READ = Flag(1)
        """)
    m = generate_module(path, "Flag")
    for value in range(-2, 6):
        assert m.flag_defined(m.Flag(value)) is (value in (1, 2, 3))
    # duplicate values render as the first constant in source order
    assert m.flag_string(m.ALSO_READ) == "READ"
    assert m.flag_next(m.ALSO_READ) == m.WRITE


def test_constants_from_another_module(temp_dir):
    write_source(temp_dir, "base_kinds.py", """
        class Kind(int):
            pass

        FIRST = Kind(0)
        """)
    path = write_source(temp_dir, "extra_kinds.py", """
        from base_kinds import Kind

        SECOND = Kind(1)
        """)
    m = generate_module(path, "Kind")
    assert m.kind_string(m.SECOND) == "SECOND"
    assert m.kind_next(m.SECOND) == m.FIRST


def test_drift_guard_fails_after_constants_change(example_dir):
    path = os.path.join(example_dir, "example.py")
    generate_module(path, "Kind", output_name="kind_drift_gen")
    rewrite_source(path, "Kind2 = Kind(1)", "Kind2 = Kind(5)")
    with pytest.raises(KeyError):
        import_generated_module(os.path.join(example_dir, "kind_drift_gen.py"), "kind_drift_gen")


def test_drift_guard_fails_after_text_changes(example_dir):
    path = os.path.join(example_dir, "example.py")
    generate_module(path, "StrKind", output_name="str_kind_drift_gen")
    rewrite_source(path, 'StrKind("World")', 'StrKind("Wordl")')
    with pytest.raises(KeyError):
        import_generated_module(os.path.join(example_dir, "str_kind_drift_gen.py"), "str_kind_drift_gen")


def test_drift_guard_fails_after_text_gets_shorter(example_dir):
    path = os.path.join(example_dir, "example.py")
    generate_module(path, "StrKind", output_name="str_kind_short_gen")
    rewrite_source(path, 'StrKind("World")', 'StrKind("Worl")')
    with pytest.raises(KeyError):
        import_generated_module(os.path.join(example_dir, "str_kind_short_gen.py"), "str_kind_short_gen")


def test_drift_guard_passes_when_unchanged(example_dir):
    path = os.path.join(example_dir, "example.py")
    generate_module(path, "Kind", output_name="kind_stable_gen")
    m = import_generated_module(os.path.join(example_dir, "kind_stable_gen.py"), "kind_stable_gen")
    assert m._check_kind_constants() is None
