"""Restricted interpreter for descriptor-authored expressions.

Expressions use Python expression syntax but are never compiled to bytecode:
the parsed ``ast`` is walked node by node and only the node types handled
below are accepted. Names resolve against an explicit scope chain, attribute
access goes through the whitelist in ``sandbox.builtins``, and every node
visit counts against a step budget.
"""

from __future__ import annotations

import ast
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from integration_runtime.errors import EvaluatorRuntimeError
from integration_runtime.sandbox.builtins import MAX_SEQUENCE_SIZE, check_size, safe_attribute

MAX_STEPS = 100_000
MAX_EXPONENT = 1_000

_SPEC_NUMBER_RE = re.compile(r"\d+")

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPERATORS: dict[type[ast.cmpop], Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


@lru_cache(maxsize=512)
def compile_expression(source: str) -> ast.Expression:
    """Parse an expression once; parsed trees are shared read-only."""
    try:
        return ast.parse(source.strip(), mode="eval")
    except SyntaxError as exc:
        raise EvaluatorRuntimeError(f"invalid expression: {exc.msg}") from exc


@dataclass
class Scope:
    bindings: dict[str, Any] = field(default_factory=dict)
    parent: Scope | None = None

    def lookup(self, name: str) -> Any:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        raise EvaluatorRuntimeError(f"name '{name}' is not defined")

    def child(self, bindings: dict[str, Any]) -> Scope:
        return Scope(bindings=bindings, parent=self)


class SandboxFunction:
    """A lambda defined inside the sandbox, callable from built-ins too."""

    def __init__(self, *, interpreter: Interpreter, node: ast.Lambda, closure: Scope, defaults: list[Any]) -> None:
        self._interpreter = interpreter
        self._node = node
        self._closure = closure
        self._params = [arg.arg for arg in node.args.args]
        self._defaults = dict(zip(self._params[len(self._params) - len(defaults):], defaults))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if len(args) > len(self._params):
            raise EvaluatorRuntimeError(f"lambda takes {len(self._params)} arguments but {len(args)} were given")
        bindings = dict(self._defaults)
        bindings.update(zip(self._params, args))
        for name, value in kwargs.items():
            if name not in self._params:
                raise EvaluatorRuntimeError(f"lambda got an unexpected keyword argument '{name}'")
            bindings[name] = value
        missing = [name for name in self._params if name not in bindings]
        if missing:
            raise EvaluatorRuntimeError(f"lambda missing arguments: {', '.join(missing)}")
        return self._interpreter.visit(self._node.body, self._closure.child(bindings))


class Interpreter:
    """Walks expression trees; steps accumulate across every evaluate call on one instance."""

    def __init__(self, *, max_steps: int = MAX_STEPS) -> None:
        self._max_steps = max_steps
        self._steps = 0

    def evaluate(self, source: str, scope: Scope) -> Any:
        return self.visit(compile_expression(source).body, scope)

    def visit(self, node: ast.AST, scope: Scope) -> Any:
        self._steps += 1
        if self._steps > self._max_steps:
            raise EvaluatorRuntimeError("evaluation step budget exhausted")
        handler = getattr(self, f"_visit_{type(node).__name__}", None)
        if handler is None:
            raise EvaluatorRuntimeError(f"{type(node).__name__} is not allowed in expressions")
        return handler(node, scope)

    # ------------------------------------------------------------------
    # Literals and names
    # ------------------------------------------------------------------

    def _visit_Constant(self, node: ast.Constant, scope: Scope) -> Any:
        return node.value

    def _visit_Name(self, node: ast.Name, scope: Scope) -> Any:
        return scope.lookup(node.id)

    def _visit_List(self, node: ast.List, scope: Scope) -> list[Any]:
        return [self.visit(element, scope) for element in node.elts]

    def _visit_Tuple(self, node: ast.Tuple, scope: Scope) -> tuple[Any, ...]:
        return tuple(self.visit(element, scope) for element in node.elts)

    def _visit_Set(self, node: ast.Set, scope: Scope) -> set[Any]:
        return {self.visit(element, scope) for element in node.elts}

    def _visit_Dict(self, node: ast.Dict, scope: Scope) -> dict[Any, Any]:
        result: dict[Any, Any] = {}
        for key_node, value_node in zip(node.keys, node.values):
            value = self.visit(value_node, scope)
            if key_node is None:
                if not isinstance(value, Mapping):
                    raise EvaluatorRuntimeError("only mappings can be unpacked with **")
                result.update(value)
            else:
                result[self.visit(key_node, scope)] = value
        return result

    def _visit_JoinedStr(self, node: ast.JoinedStr, scope: Scope) -> str:
        result = "".join(str(self.visit(part, scope)) for part in node.values)
        check_size(len(result))
        return result

    def _visit_FormattedValue(self, node: ast.FormattedValue, scope: Scope) -> str:
        value = self.visit(node.value, scope)
        if node.conversion == ord("r"):
            value = repr(value)
        elif node.conversion == ord("a"):
            value = ascii(value)
        elif node.conversion == ord("s"):
            value = str(value)
        spec = self.visit(node.format_spec, scope) if node.format_spec is not None else ""
        # width and precision are the only spec fields that grow the output
        for number in _SPEC_NUMBER_RE.findall(spec):
            check_size(int(number))
        return format(value, spec)

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def _visit_BinOp(self, node: ast.BinOp, scope: Scope) -> Any:
        handler = _BINARY_OPERATORS.get(type(node.op))
        if handler is None:
            raise EvaluatorRuntimeError(f"operator {type(node.op).__name__} is not allowed")
        left = self.visit(node.left, scope)
        right = self.visit(node.right, scope)
        if isinstance(node.op, ast.Pow) and isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
            raise EvaluatorRuntimeError("exponent too large")
        if isinstance(node.op, ast.Mult):
            _guard_repeat(left, right)
            _guard_repeat(right, left)
        result = handler(left, right)
        if isinstance(result, (str, list, tuple)) and len(result) > MAX_SEQUENCE_SIZE:
            raise EvaluatorRuntimeError("result too large")
        return result

    def _visit_UnaryOp(self, node: ast.UnaryOp, scope: Scope) -> Any:
        handler = _UNARY_OPERATORS.get(type(node.op))
        if handler is None:
            raise EvaluatorRuntimeError(f"operator {type(node.op).__name__} is not allowed")
        return handler(self.visit(node.operand, scope))

    def _visit_BoolOp(self, node: ast.BoolOp, scope: Scope) -> Any:
        value: Any = None
        for operand in node.values:
            value = self.visit(operand, scope)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def _visit_Compare(self, node: ast.Compare, scope: Scope) -> bool:
        left = self.visit(node.left, scope)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator, scope)
            if not _COMPARE_OPERATORS[type(op)](left, right):
                return False
            left = right
        return True

    def _visit_IfExp(self, node: ast.IfExp, scope: Scope) -> Any:
        if self.visit(node.test, scope):
            return self.visit(node.body, scope)
        return self.visit(node.orelse, scope)

    # ------------------------------------------------------------------
    # Access and calls
    # ------------------------------------------------------------------

    def _visit_Subscript(self, node: ast.Subscript, scope: Scope) -> Any:
        value = self.visit(node.value, scope)
        key = self.visit(node.slice, scope)
        return value[key]

    def _visit_Slice(self, node: ast.Slice, scope: Scope) -> slice:
        lower = self.visit(node.lower, scope) if node.lower is not None else None
        upper = self.visit(node.upper, scope) if node.upper is not None else None
        step = self.visit(node.step, scope) if node.step is not None else None
        return slice(lower, upper, step)

    def _visit_Attribute(self, node: ast.Attribute, scope: Scope) -> Any:
        return safe_attribute(self.visit(node.value, scope), node.attr)

    def _visit_Call(self, node: ast.Call, scope: Scope) -> Any:
        function = self.visit(node.func, scope)
        if not callable(function):
            raise EvaluatorRuntimeError(f"{type(function).__name__} object is not callable")
        args: list[Any] = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                args.extend(self.visit(arg.value, scope))
            else:
                args.append(self.visit(arg, scope))
        kwargs: dict[str, Any] = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                raise EvaluatorRuntimeError("** arguments are not allowed")
            kwargs[keyword.arg] = self.visit(keyword.value, scope)
        result = function(*args, **kwargs)
        if isinstance(result, (str, list, tuple)):
            check_size(len(result))
        return result

    def _visit_Lambda(self, node: ast.Lambda, scope: Scope) -> SandboxFunction:
        arguments = node.args
        if arguments.vararg or arguments.kwarg or arguments.kwonlyargs or arguments.posonlyargs:
            raise EvaluatorRuntimeError("only plain positional lambda parameters are allowed")
        defaults = [self.visit(default, scope) for default in arguments.defaults]
        return SandboxFunction(interpreter=self, node=node, closure=scope, defaults=defaults)

    # ------------------------------------------------------------------
    # Comprehensions
    # ------------------------------------------------------------------

    def _visit_ListComp(self, node: ast.ListComp, scope: Scope) -> list[Any]:
        return [self.visit(node.elt, inner) for inner in self._comprehension_scopes(node.generators, scope)]

    def _visit_GeneratorExp(self, node: ast.GeneratorExp, scope: Scope) -> list[Any]:
        return [self.visit(node.elt, inner) for inner in self._comprehension_scopes(node.generators, scope)]

    def _visit_SetComp(self, node: ast.SetComp, scope: Scope) -> set[Any]:
        return {self.visit(node.elt, inner) for inner in self._comprehension_scopes(node.generators, scope)}

    def _visit_DictComp(self, node: ast.DictComp, scope: Scope) -> dict[Any, Any]:
        return {
            self.visit(node.key, inner): self.visit(node.value, inner)
            for inner in self._comprehension_scopes(node.generators, scope)
        }

    def _comprehension_scopes(self, generators: list[ast.comprehension], scope: Scope) -> Iterable[Scope]:
        if not generators:
            yield scope
            return
        first, rest = generators[0], generators[1:]
        if first.is_async:
            raise EvaluatorRuntimeError("async comprehensions are not allowed")
        for item in self.visit(first.iter, scope):
            inner = scope.child(_bind_target(first.target, item))
            if all(self.visit(condition, inner) for condition in first.ifs):
                yield from self._comprehension_scopes(rest, inner)


def _bind_target(target: ast.expr, value: Any) -> dict[str, Any]:
    if isinstance(target, ast.Name):
        return {target.id: value}
    if isinstance(target, ast.Tuple):
        values = list(value)
        if len(values) != len(target.elts):
            raise EvaluatorRuntimeError("cannot unpack comprehension target")
        bindings: dict[str, Any] = {}
        for element, item in zip(target.elts, values):
            bindings.update(_bind_target(element, item))
        return bindings
    raise EvaluatorRuntimeError("comprehension targets must be names or tuples of names")


def _guard_repeat(sequence: Any, count: Any) -> None:
    if isinstance(sequence, (str, list, tuple)) and isinstance(count, int) and len(sequence) * count > MAX_SEQUENCE_SIZE:
        raise EvaluatorRuntimeError("result too large")
