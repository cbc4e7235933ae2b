"""Recursion and cycle guard tests."""

import pytest

from pseudoconv import ConversionOptions, convert
from pseudoconv.errors import CycleDetected, RecursionLimitExceeded
from pseudoconv.frontend.ast import Block, Literal, Pos
from pseudoconv.frontend.parse import parse
from pseudoconv.middleend import ConversionContext, Engine, RecursionGuard


def lit(offset: int) -> Literal:
    return Literal(Pos(1, offset + 1, offset, offset + 1), "1", "int")


def test_visit_tracks_path():
    guard = RecursionGuard(10)
    node = lit(0)
    with guard.visit(node, 0):
        assert len(guard) == 1
        assert guard.path == (("Literal", 0, 1),)
    assert len(guard) == 0


def test_depth_limit():
    guard = RecursionGuard(3)
    with pytest.raises(RecursionLimitExceeded) as exc:
        with guard.visit(lit(0), 3):
            pass
    assert "maximum depth 3" in exc.value.msg


def test_revisit_on_path_is_a_cycle():
    guard = RecursionGuard(10)
    node = lit(0)
    with pytest.raises(CycleDetected):
        with guard.visit(node, 0):
            with guard.visit(node, 1):
                pass


def test_siblings_are_not_cycles():
    guard = RecursionGuard(10)
    node = lit(0)
    with guard.visit(node, 0):
        pass
    with guard.visit(node, 0):
        pass
    assert len(guard) == 0


def test_path_unwinds_after_error():
    guard = RecursionGuard(10)
    outer = lit(0)
    with pytest.raises(ValueError):
        with guard.visit(outer, 0):
            with guard.visit(lit(2), 1):
                raise ValueError("boom")
    assert len(guard) == 0


def _context(max_depth: int = 50) -> ConversionContext:
    return ConversionContext.fresh(ConversionOptions(max_depth=max_depth), "java")


def test_self_containing_block_is_rejected():
    program = parse("{ x = 1; }", "java")
    block = program.body[0]
    assert isinstance(block, Block)
    block.body.append(block)
    with pytest.raises(CycleDetected):
        Engine().convert(program, _context())


def test_self_containing_case_block_is_rejected():
    program = parse("switch (x) { case 1: { y = 1; } }", "java")
    block = program.body[0].cases[0].body[0]
    assert isinstance(block, Block)
    block.body.append(block)
    with pytest.raises(CycleDetected):
        Engine().convert(program, _context())


def test_shared_statement_is_converted_each_time():
    program = parse("x = 1;", "java")
    program.body.append(program.body[0])
    lines = Engine().convert(program, _context())
    assert lines == ["x ← 1", "x ← 1"]


def test_engine_depth_limit():
    program = parse("int x = 1 + 2 + 3 + 4 + 5 + 6;", "java")
    with pytest.raises(RecursionLimitExceeded):
        Engine().convert(program, _context(max_depth=5))


def test_depth_limit_fails_conversion():
    result = convert(
        "int x = 1 + 2 + 3 + 4 + 5 + 6;", "java", ConversionOptions(max_depth=5)
    )
    assert not result.success
    assert result.pseudocode == ""
    assert [d.code for d in result.warnings] == ["RECURSION_LIMIT"]


def test_deep_source_nesting_is_reported():
    source = "if (x) " * 60 + "y = 1;"
    result = convert(source, "java")
    assert not result.success
    assert result.errors()[0].code == "RECURSION_LIMIT"
    assert "maximum depth of 50" in result.errors()[0].message


def test_nesting_within_limit_converts():
    source = "if (x) " * 10 + "y = 1;"
    result = convert(source, "java")
    assert result.success
    assert result.pseudocode.count("ENDIF") == 10
