"""
Evaluation tests for the hilang interpreter
"""

import pytest
from interpreter import (
  run,
  create_interpreter,
  coerce_value,
  make_runtime_env,
  env_bind_value,
  env_lookup_value,
)
from stdlib import (
  make_integer,
  make_text,
  make_boolean,
  make_tuple,
  make_unit,
  hilang_show,
  hilang_add,
  hilang_eq,
  hilang_mod,
  resolve_operator_name,
)
from error_handling import (
  HilangParseError,
  HilangRuntimeError,
  HilangTypeError,
  HilangNameError,
  HilangDivisionError,
  HilangOverflowError,
)


class TestStages:
  """Single stages and their pass-through behavior"""

  def test_literal(self, run_program):
    value, _ = run_program('"hello"')
    assert value == make_text("hello")

  def test_literal_ignores_incoming(self, run_program):
    value, _ = run_program('"5" -> int -> "x"')
    assert value == make_text("x")

  @pytest.mark.parametrize("text, expected", [
      ("42", 42), ("-7", -7), ("+8", 8), ("007", 7),
      ("9223372036854775807", 2 ** 63 - 1),
      ("-9223372036854775808", -(2 ** 63)),
  ])
  def test_int(self, run_program, text, expected):
    value, _ = run_program(f'"{text}" -> int')
    assert value == make_integer(expected)

  @pytest.mark.parametrize("text", ["abc", " 5", "1_000", "", "3.0", "0x10"])
  def test_int_rejects_malformed_text(self, run_program, text):
    with pytest.raises(HilangTypeError):
      run_program(f'"{text}" -> int')

  def test_int_out_of_range(self, run_program):
    with pytest.raises(HilangOverflowError):
      run_program('"9223372036854775808" -> int')

  def test_int_of_unit(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('pass -> int')

  def test_str(self, run_program):
    value, _ = run_program('"-12" -> int -> str')
    assert value == make_text("-12")

  def test_str_of_unit(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('pass -> str')

  def test_store_passes_through(self, run_program):
    value, _ = run_program('"abc" -> "s".store')
    assert value == make_text("abc")

  def test_store_then_load(self, run_program):
    value, _ = run_program('"5" -> int -> "n".store -> pass -> "n".load')
    assert value == make_integer(5)

  def test_store_overwrites(self, run_program):
    value, _ = run_program('"1" -> n.store; "2" -> <n>.store; n.load')
    assert value == make_text("2")

  def test_load_unset(self, run_program):
    with pytest.raises(HilangNameError) as exc_info:
      run_program('"missing".load')
    assert "missing" in exc_info.value.message

  def test_pass(self, run_program):
    value, _ = run_program('"a" -> pass')
    assert value == make_unit()

  def test_output_passes_through(self, run_program):
    value, lines = run_program('"7" -> int -> output')
    assert value == make_integer(7)
    assert lines == ["7"]

  def test_output_each_tag(self, run_program):
    _, lines = run_program('"a b" -> output; "-3" -> int -> output; <"1", "1">.eq -> output')
    assert lines == ["a b", "-3", "true"]

  def test_output_unit(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('pass -> output')

  def test_input(self, run_program):
    value, lines = run_program('input -> output', input=lambda: "hello\n")
    assert value == make_text("hello")
    assert lines == ["hello"]

  def test_input_at_end_of_stream(self, run_program):
    value, _ = run_program('input', input=lambda: "")
    assert value == make_text("")

  def test_input_to_int(self, run_program):
    value, _ = run_program('input -> int', input=lambda: "41\r\n")
    assert value == make_integer(41)


class TestOperators:
  """Tuples and the binary operator set"""

  def test_tuple_elements_share_input(self, run_program):
    value, _ = run_program('"7" -> int -> <"a".store, "b".store>.add')
    assert value == make_integer(14)

  def test_tuple_left_runs_first(self, run_program):
    _, lines = run_program('<"L" -> output, "R" -> output>.eq')
    assert lines == ["L", "R"]

  def test_tuple_store_is_visible_to_right(self, run_program):
    value, _ = run_program('<"3" -> int -> "k".store, "k".load>.mul')
    assert value == make_integer(9)

  @pytest.mark.parametrize("op, left, right, expected", [
      ("add", 2, 3, 5),
      ("sub", 2, 3, -1),
      ("mul", -4, 3, -12),
      ("mod", 7, 3, 1),
      ("mod", -7, 3, -1),
      ("mod", 7, -3, 1),
      ("mod", -7, -3, -1),
      ("+", 2, 3, 5),
      ("-", 10, 4, 6),
      ("*", 6, 7, 42),
      ("%", 9, 4, 1),
  ])
  def test_arithmetic(self, run_program, op, left, right, expected):
    value, _ = run_program(f'<"{left}" -> int, "{right}" -> int>.{op}')
    assert value == make_integer(expected)

  @pytest.mark.parametrize("op, left, right, expected", [
      ("le", 2, 2, True),
      ("le", 3, 2, False),
      ("lt", 2, 2, False),
      ("lt", 1, 2, True),
      ("eq", 5, 5, True),
      ("ne", 5, 5, False),
      ("=<", 1, 9, True),
      ("==", 1, 9, False),
      ("!=", 1, 9, True),
  ])
  def test_comparison(self, run_program, op, left, right, expected):
    value, _ = run_program(f'<"{left}" -> int, "{right}" -> int>.{op}')
    assert value == make_boolean(expected)

  def test_text_equality(self, run_program):
    value, _ = run_program('<"abc", "abc">.eq')
    assert value == make_boolean(True)
    value, _ = run_program('<"abc", "abd">.ne')
    assert value == make_boolean(True)

  def test_eq_mixed_tags(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('<"5", "5" -> int>.eq')

  def test_le_on_text(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('<"a", "b">.le')

  def test_add_on_text(self, run_program):
    with pytest.raises(HilangTypeError):
      run_program('<"1", "2">.add')

  def test_mod_by_zero(self, run_program):
    with pytest.raises(HilangDivisionError):
      run_program('<"5" -> int, "0" -> int>.mod')

  def test_add_overflow(self, run_program):
    with pytest.raises(HilangOverflowError):
      run_program('<"9223372036854775807" -> int, "1" -> int>.add')

  def test_mul_overflow(self, run_program):
    with pytest.raises(HilangOverflowError):
      run_program('<"4294967296" -> int, "4294967296" -> int>.mul')

  def test_operator_requires_tuple(self):
    with pytest.raises(HilangTypeError):
      hilang_add(make_integer(1))

  def test_operators_directly(self):
    pair = make_tuple(make_integer(-7), make_integer(2))
    assert hilang_mod(pair) == make_integer(-1)
    assert hilang_eq(make_tuple(make_text("x"), make_text("x"))) == make_boolean(True)

  def test_resolve_operator_name(self):
    assert resolve_operator_name("=<") == "le"
    assert resolve_operator_name("mod") == "mod"
    assert resolve_operator_name("store") is None


class TestAlternation:
  """[ b1 | b2 | ... ] branch selection"""

  def test_stored_integer_equals_fresh_conversion(self, run_program):
    value, lines = run_program(
        '"5" -> int -> "n".store;'
        '[ <"n".load, "5" -> int>.eq -> output | "unequal" -> output ]'
    )
    assert value == make_boolean(True)
    assert lines == ["true"]

  def test_first_true_branch_wins(self, run_program):
    _, lines = run_program(
        '[ <"1" -> int, "1" -> int>.eq -> "first" -> output'
        ' | <"2" -> int, "2" -> int>.eq -> "second" -> output ]'
    )
    assert lines == ["first"]

  def test_later_guards_are_not_evaluated(self, run_program):
    _, lines = run_program(
        '[ <"1", "1">.eq -> "ok" -> output | <"missing".load, "1">.eq -> "never" ]'
    )
    assert lines == ["ok"]

  def test_falls_through_to_later_branch(self, run_program):
    value, _ = run_program('[ <"a", "b">.eq -> "one" | <"a", "a">.eq -> "two" ]')
    assert value == make_text("two")

  def test_default_branch(self, run_program):
    value, lines = run_program('"z" -> [ <"a", "b">.eq -> "one" | output ]')
    assert value == make_text("z")
    assert lines == ["z"]

  def test_no_branch_taken(self, run_program):
    value, lines = run_program('[ <"a", "b">.eq -> "one" -> output ]')
    assert value == make_unit()
    assert lines == []

  def test_action_receives_true(self, run_program):
    value, lines = run_program('[ <"1", "1">.eq -> output ]')
    assert value == make_boolean(True)
    assert lines == ["true"]

  def test_guards_see_incoming_value(self, run_program):
    value, _ = run_program('"4" -> int -> [ <"x".store, "4" -> int>.eq -> "x".load | "no" ]')
    assert value == make_integer(4)

  def test_guard_side_effects_persist(self, run_program):
    value, _ = run_program('[ <"v" -> "seen".store, "w">.eq -> "one" | "seen".load ]')
    assert value == make_text("v")


class TestLoop:
  """( guard ; action ).loop iteration"""

  def test_zero_iterations(self, run_program):
    value, lines = run_program('(<"1" -> int, "0" -> int>.le; "body" -> output).loop')
    assert value == make_unit()
    assert lines == []

  def test_counts_down(self, run_program):
    _, lines = run_program(
        '"3" -> int -> "n".store;'
        '(<"n".load, "0" -> int>.ne; <"n".load, "1" -> int>.sub -> "n".store -> output).loop'
    )
    assert lines == ["2", "1", "0"]

  def test_action_result_feeds_next_guard(self, run_program):
    _, lines = run_program(
        '"1" -> int -> (<"v".store, "4" -> int>.lt; "v".load -> output; <"v".load, "v".load>.add).loop'
    )
    assert lines == ["1", "2"]

  def test_loop_result_is_unit(self, run_program):
    value, _ = run_program(
        '"0" -> int -> i.store; (<i.load, "2" -> int>.lt; <i.load, "1" -> int>.add -> i.store).loop'
    )
    assert value == make_unit()

  def test_guard_must_be_boolean(self):
    # A comparison always yields a Boolean, so drive the evaluator with a hand-built body
    from interpreter import eval_loop, make_execution_context
    from semantics import make_ast_node, make_branch

    guard = make_ast_node("PIPELINE", None, [make_ast_node("LITERAL", "yes")])
    action = make_ast_node("PIPELINE", None, [])
    loop = make_ast_node("LOOP", make_branch(guard, action), [guard, action])
    with pytest.raises(HilangTypeError):
      eval_loop(loop, make_unit(), make_runtime_env(), make_execution_context())


class TestErrors:
  """Runtime errors carry a kind and the failing stage's location"""

  def test_output_before_error_is_kept(self):
    lines = []
    with pytest.raises(HilangNameError):
      run('"a" -> output -> "b".load', output=lines.append)
    assert lines == ["a"]

  def test_error_span(self, run_program):
    with pytest.raises(HilangNameError) as exc_info:
      run_program('"a" -> output;\n  "b".load', filename="prog.hi")
    span = exc_info.value.span
    assert span.filename == "prog.hi"
    assert span.start_line == 2
    assert span.start_col == 3

  def test_error_span_inside_loop(self, run_program):
    with pytest.raises(HilangDivisionError) as exc_info:
      run_program('(<"1", "1">.eq;\n <"1" -> int, "0" -> int>.mod).loop')
    assert exc_info.value.span.start_line == 2

  def test_error_message_format(self, run_program):
    with pytest.raises(HilangRuntimeError) as exc_info:
      run_program('"x".load')
    assert str(exc_info.value).startswith("NameError at <input>:1:1")

  def test_operator_error_points_at_method(self, run_program):
    with pytest.raises(HilangTypeError) as exc_info:
      run_program('<<"a", "b">.eq, "c">.eq')
    span = exc_info.value.span
    assert (span.start_col, span.end_col) == (22, 24)
    with pytest.raises(HilangTypeError) as exc_info:
      run_program('<<"a", "b">.add, "c">.eq')
    assert exc_info.value.span.start_col == 13

  def test_deep_nesting_is_a_parse_error(self, run_program):
    with pytest.raises(HilangParseError):
      run_program("(" * 300 + '"a"' + ")" * 300 + " -> output")

  def test_error_kinds(self):
    assert HilangTypeError.kind == "TypeError"
    assert HilangNameError.kind == "NameError"
    assert HilangDivisionError.kind == "DivisionError"
    assert HilangOverflowError.kind == "OverflowError"


class TestHostInterface:
  """Embedding: initial bindings, initial value and I/O callables"""

  def test_preloaded_binding(self, run_program):
    value, _ = run_program('<"3" -> int, "a".load>.add -> "b".store -> "b".load', env={"a": 5})
    assert value == make_integer(8)

  def test_initial_stream(self, run_program):
    value, _ = run_program('"x".store -> <"x".load, "1" -> int>.add', stream=41)
    assert value == make_integer(42)

  def test_initial_stream_defaults_to_unit(self, run_program):
    value, _ = run_program('"x".store -> "x".load')
    assert value == make_unit()

  def test_environment_does_not_outlive_run(self, run_program):
    run_program('"1" -> "k".store')
    with pytest.raises(HilangNameError):
      run_program('"k".load')

  def test_caller_bindings_are_not_mutated(self, run_program):
    bindings = {"a": 1}
    run_program('"2" -> "a".store -> "b".store', env=bindings)
    assert bindings == {"a": 1}

  def test_coerce_value(self):
    assert coerce_value(True) == make_boolean(True)
    assert coerce_value(3) == make_integer(3)
    assert coerce_value("s") == make_text("s")
    assert coerce_value(None) == make_unit()
    assert coerce_value((1, "a")) == make_tuple(make_integer(1), make_text("a"))
    assert coerce_value(make_text("t")) == make_text("t")

  def test_coerce_rejects_unknown_host_values(self):
    with pytest.raises(HilangTypeError):
      coerce_value(1.5)
    with pytest.raises(HilangOverflowError):
      coerce_value(2 ** 64)

  def test_environment_helpers(self):
    env = make_runtime_env({"a": 1})
    updated = env_bind_value(env, "b", make_text("x"))
    assert env_lookup_value(updated, "b") == make_text("x")
    assert env_lookup_value(env, "b") is None
    assert env_lookup_value(updated, "a") == make_integer(1)

  def test_show(self):
    assert hilang_show(make_tuple(make_integer(1), make_text("a"))) == "<1, a>"
    assert hilang_show(make_boolean(False)) == "false"

  def test_interpreter_object(self, tmp_path):
    lines = []
    interpreter = create_interpreter(output=lines.append, input=lambda: "9\n")
    value = interpreter.run_source('input -> int -> output', stream=None)
    assert value == make_integer(9)

    program = tmp_path / "greet.hi"
    program.write_text('"hi" -> output\n', encoding='utf-8')
    interpreter.run_file(str(program))
    assert lines == ["9", "hi"]

  def test_run_file_on_directory(self, tmp_path):
    with pytest.raises(HilangParseError):
      create_interpreter().run_file(str(tmp_path))

  def test_debug_trace_goes_to_stderr(self, run_program, capsys):
    _, lines = run_program('"a" -> output', debug=True)
    captured = capsys.readouterr()
    assert lines == ["a"]
    assert captured.out == ""
    assert "Evaluating: PIPELINE" in captured.err
