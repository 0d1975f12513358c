import os
import pytest

from enumerator_errors import AmbiguousAnchor, AmbiguousTypeName, TypeNotFound
from python_source_loader import load_python_sources
from semantic_model import DefinitionKind, normalize_path
from type_locator import locate
from tests.test_utils import write_source


@pytest.fixture
def example_model(example_dir):
    path = os.path.join(example_dir, "example.py")
    return path, load_python_sources(path)


def test_locate_by_marker_line(example_model):
    path, model = example_model
    kind = locate(model, anchor_file=path, anchor_line=3)
    assert kind.name == "Kind"
    assert kind.declaring_line == 4
    assert kind.declaring_file == normalize_path(path)
    assert locate(model, anchor_file=path, anchor_line=12).name == "StrKind"


def test_locate_on_the_declaration_line(example_model):
    path, model = example_model
    assert locate(model, anchor_file=path, anchor_line=4).name == "Kind"


def test_locate_from_top_of_file(example_model):
    path, model = example_model
    assert locate(model, anchor_file=path, anchor_line=0).name == "Kind"


def test_locate_by_name_ignores_anchor(example_model):
    path, model = example_model
    assert locate(model, "StrKind", path, 3).name == "StrKind"


def test_unknown_name(example_model):
    _, model = example_model
    with pytest.raises(TypeNotFound) as excinfo:
        locate(model, "Missing")
    assert excinfo.value.name == "Missing"
    assert "Missing" in str(excinfo.value)


def test_constant_after_anchor_is_ambiguous(example_model):
    path, model = example_model
    with pytest.raises(AmbiguousAnchor) as excinfo:
        locate(model, anchor_file=path, anchor_line=8)
    assert excinfo.value.definition.name == "Kind1"
    assert excinfo.value.definition.kind is DefinitionKind.CONSTANT
    assert "constant Kind1" in str(excinfo.value)


def test_nothing_after_anchor(example_model):
    path, model = example_model
    with pytest.raises(TypeNotFound):
        locate(model, anchor_file=path, anchor_line=100)


def test_no_name_and_no_file(example_model):
    _, model = example_model
    with pytest.raises(TypeNotFound):
        locate(model)


def test_function_after_anchor_is_ambiguous(temp_dir):
    path = write_source(temp_dir, "funcs.py", """
        # enumerator
        def helper():
            pass

        class Kind(int):
            pass
        """)
    model = load_python_sources(path)
    with pytest.raises(AmbiguousAnchor) as excinfo:
        locate(model, anchor_file=path, anchor_line=1)
    assert excinfo.value.definition.kind is DefinitionKind.FUNCTION
    assert "function helper" in str(excinfo.value)


def test_anchor_only_looks_in_the_anchor_file(temp_dir):
    write_source(temp_dir, "other.py", """
        class Other(int):
            pass
        """)
    path = write_source(temp_dir, "main.py", """
        x = 1.5
        """)
    model = load_python_sources(path)
    with pytest.raises(TypeNotFound):
        locate(model, anchor_file=path, anchor_line=2)


def test_name_prefers_the_type_defined_in_the_input_module(temp_dir):
    write_source(temp_dir, "a_other.py", """
        class Kind(int):
            pass
        """)
    path = write_source(temp_dir, "b_mine.py", """
        class Kind(int):
            pass
        """)
    model = load_python_sources(path)
    assert locate(model, "Kind", path).declaring_file == normalize_path(path)
    other = os.path.join(temp_dir, "a_other.py")
    assert locate(model, "Kind", other).declaring_file == normalize_path(other)


def test_name_follows_imports_of_the_input_module(temp_dir):
    write_source(temp_dir, "a_other.py", """
        class Kind(int):
            pass
        """)
    write_source(temp_dir, "b_base.py", """
        class Kind(int):
            pass
        """)
    path = write_source(temp_dir, "c_user.py", """
        from b_base import Kind
        """)
    model = load_python_sources(path)
    assert locate(model, "Kind", path).declaring_file == normalize_path(os.path.join(temp_dir, "b_base.py"))


def test_name_defined_in_several_other_modules_is_ambiguous(temp_dir):
    write_source(temp_dir, "a_kinds.py", """
        class Kind(int):
            pass
        """)
    write_source(temp_dir, "b_kinds.py", """
        class Kind(int):
            pass
        """)
    path = write_source(temp_dir, "c_main.py", """
        VALUE = 1
        """)
    model = load_python_sources(path)
    with pytest.raises(AmbiguousTypeName) as excinfo:
        locate(model, "Kind", path)
    assert len(excinfo.value.definitions) == 2
    assert "a_kinds.py" in str(excinfo.value) and "b_kinds.py" in str(excinfo.value)
    with pytest.raises(TypeNotFound):
        locate(model, "Kind")


def test_unique_name_in_a_sibling_module(temp_dir):
    write_source(temp_dir, "kinds.py", """
        class Kind(int):
            pass
        """)
    path = write_source(temp_dir, "main.py", """
        VALUE = 1
        """)
    model = load_python_sources(path)
    assert locate(model, "Kind", path).declaring_file == normalize_path(os.path.join(temp_dir, "kinds.py"))
