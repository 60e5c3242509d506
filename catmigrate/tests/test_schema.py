"""Tests for schema presentations and paths."""

import pytest
from pydantic import ValidationError

from catmigrate.errors import AritySizeMismatch, MalformedMapping, SchemaMismatch
from catmigrate.schema import (
    DDS,
    GRAPH,
    REFLEXIVE_GRAPH,
    SYMMETRIC_GRAPH,
    WEIGHTED_GRAPH,
    Attr,
    Equation,
    Hom,
    Path,
    Schema,
    as_path,
)


def test_path_shorthands():
    """Test that strings, lists and identity dicts coerce to paths."""
    assert as_path("src") == Path.of("src")
    assert as_path(["phi", "phi"]).steps == ("phi", "phi")
    ident = as_path({"id": "V"})
    assert ident.is_identity
    assert ident.start == "V"
    assert str(Path.of("src", "tgt")) == "src.tgt"
    assert str(Path.identity("V")) == "id(V)"


def test_path_then():
    """Test composition keeps the start of an identity."""
    p = Path.identity("E").then(Path.of("src"))
    assert p.steps == ("src",)
    assert p.start == "E"


def test_path_type():
    """Test typing of composite paths."""
    assert GRAPH.path_type(Path.of("src")) == ("E", "V")
    assert GRAPH.path_type(Path.identity("V")) == ("V", "V")
    assert DDS.path_type(Path.of("phi", "phi", "phi")) == ("X", "X")
    assert WEIGHTED_GRAPH.path_type(Path.of("weight")) == ("E", "Weight")


def test_path_type_errors():
    """Test that misaligned or unknown paths are rejected."""
    with pytest.raises(AritySizeMismatch):
        GRAPH.path_type(Path.of("src", "tgt"))
    with pytest.raises(SchemaMismatch):
        GRAPH.path_type(Path.of("nope"))
    with pytest.raises(MalformedMapping):
        GRAPH.path_type(Path())
    with pytest.raises(AritySizeMismatch):
        GRAPH.path_type(Path.of("src"), start="V")
    with pytest.raises(AritySizeMismatch):
        WEIGHTED_GRAPH.path_type(Path.of("weight", "src"))


def test_schema_rejects_bad_generators():
    """Test construction-time checks of schemas."""
    with pytest.raises(ValidationError):
        Schema(obs=("V", "V"))
    with pytest.raises(ValidationError):
        Schema(obs=("V",), homs=(Hom(name="f", dom="V", codom="W"),))
    with pytest.raises(ValidationError):
        Schema(obs=("V",), attrs=(Attr(name="a", dom="V", codom="Missing"),))
    with pytest.raises(ValidationError):
        Schema(
            obs=("V", "E"),
            homs=(Hom(name="src", dom="E", codom="V"),),
            equations=(Equation(lhs=Path.of("src"), rhs=Path.identity("E")),),
        )


def test_lookup():
    """Test generator lookup helpers."""
    assert GRAPH.hom("src").codom == "V"
    assert [h.name for h in GRAPH.homs_from("E")] == ["src", "tgt"]
    assert WEIGHTED_GRAPH.columns_of("E") == ["src", "tgt", "weight"]
    assert WEIGHTED_GRAPH.attr("weight").codom == "Weight"
    with pytest.raises(SchemaMismatch):
        GRAPH.hom("refl")


def test_paths_equal_modulo_equations():
    """Test equality of paths using declared equations."""
    assert REFLEXIVE_GRAPH.paths_equal(Path.of("refl", "src"), Path.identity("V"))
    assert REFLEXIVE_GRAPH.paths_equal(Path.of("refl", "src"), Path.of("refl", "tgt"))
    assert SYMMETRIC_GRAPH.paths_equal(Path.of("inv", "inv", "src"), Path.of("src"))
    assert SYMMETRIC_GRAPH.paths_equal(Path.of("inv", "inv", "inv", "tgt"), Path.of("src"))
    assert not SYMMETRIC_GRAPH.paths_equal(Path.of("src"), Path.of("tgt"))
    assert not GRAPH.paths_equal(Path.of("src"), Path.of("tgt"))


def test_paths_equal_is_symmetric():
    """Test that argument order does not change the answer."""
    pairs = [
        (REFLEXIVE_GRAPH, Path.identity("V"), Path.of("refl", "src")),
        (REFLEXIVE_GRAPH, Path.identity("V"), Path.of("refl", "tgt")),
        (SYMMETRIC_GRAPH, Path.of("src"), Path.of("inv", "inv", "src")),
        (SYMMETRIC_GRAPH, Path.identity("E"), Path.of("inv", "inv")),
        (SYMMETRIC_GRAPH, Path.of("tgt"), Path.of("inv", "src")),
    ]
    for schema, p, q in pairs:
        assert schema.paths_equal(p, q)
        assert schema.paths_equal(q, p)
    assert not SYMMETRIC_GRAPH.paths_equal(Path.identity("E"), Path.of("inv"))
    assert not SYMMETRIC_GRAPH.paths_equal(Path.of("inv"), Path.identity("E"))


def test_extend():
    """Test extending a schema with new generators."""
    assert REFLEXIVE_GRAPH.obs == ("V", "E")
    assert REFLEXIVE_GRAPH.has_hom("refl")
    assert len(REFLEXIVE_GRAPH.equations) == 2
    assert GRAPH != REFLEXIVE_GRAPH
