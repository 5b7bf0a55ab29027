"""Whitelisted arithmetic expressions.

Generation output carries expressions such as ``x^2 - 4x + 3``,
``sqrt(3)`` or the JavaScript-style ``Math.PI/4``. They are parsed with
:mod:`ast` and walked against a fixed whitelist of operators, constants and
unary functions; nothing is ever passed to ``eval``.
"""
from __future__ import annotations

import ast
import math
import operator
import re
from typing import Any, Callable

import sympy as sp

__all__ = [
    "FUNCTIONS",
    "CONSTANTS",
    "normalize_expression",
    "parse_expression",
    "evaluate",
    "compile_expression",
    "to_number",
    "to_sympy",
    "quadratic_coefficients",
    "to_pgfplots",
    "substitute_math_literals",
]

FUNCTIONS: dict[str, Callable[[float], float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "sqrt": math.sqrt,
    "log": math.log,
    "ln": math.log,
    "exp": math.exp,
    "abs": abs,
}

CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e}

_BIN_OPS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_UNARY_OPS: dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_MAX_EXPONENT = 100
_MAX_EXPAND_DEGREE = 24

_TOKEN_RE = re.compile(r"\s*(?:((?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?)|([A-Za-z_][A-Za-z_0-9]*)|(\*\*|[-+*/%(),]))")

_UNICODE_REPLACEMENTS = {
    "×": "*",
    "·": "*",
    "÷": "/",
    "−": "-",
    "–": "-",
    "π": "pi",
    "√": "sqrt",
    "（": "(",
    "）": ")",
}


def _insert_implicit_multiplication(expr: str) -> str:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(expr):
        match = _TOKEN_RE.match(expr, pos)
        if match is None or match.end() == pos:
            if expr[pos:].strip():
                raise ValueError(f"unexpected character {expr[pos]!r} in {expr!r}")
            break
        number, name, op = match.groups()
        if number is not None:
            tokens.append(("num", number))
        elif name is not None:
            tokens.append(("name", name))
        elif op is not None:
            tokens.append(("op", op))
        pos = match.end()

    out: list[str] = []
    prev: tuple[str, str] | None = None
    for kind, text in tokens:
        if prev is not None:
            pkind, ptext = prev
            left_operand = pkind == "num" or (pkind == "name" and ptext not in FUNCTIONS) or ptext == ")"
            right_operand = kind in {"num", "name"} or text == "("
            if left_operand and right_operand:
                out.append("*")
        out.append(text)
        prev = (kind, text)
    return " ".join(out)


def normalize_expression(expr: str) -> str:
    """Return *expr* rewritten into Python operator syntax.

    ``^`` becomes ``**``, ``Math.*`` names lose their prefix, unicode operators
    are mapped to ASCII and implicit multiplication (``2x``, ``3(x+1)``) is made
    explicit.
    """
    text = str(expr).strip()
    for src, dst in _UNICODE_REPLACEMENTS.items():
        text = text.replace(src, dst)
    text = re.sub(r"^\s*(?:y|f\s*\(\s*x\s*\))\s*=", "", text)
    text = re.sub(r"Math\.PI", "pi", text)
    text = re.sub(r"Math\.E\b", "e", text)
    text = re.sub(r"Math\.([a-z]+)", r"\1", text)
    text = text.replace("^", "**")
    return _insert_implicit_multiplication(text)


def parse_expression(expr: str) -> ast.Expression:
    """Parse *expr* and reject anything outside the whitelist."""
    try:
        tree = ast.parse(normalize_expression(expr), mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"invalid expression {expr!r}: {exc.msg}") from exc
    for node in ast.walk(tree):
        if isinstance(node, (ast.Expression, ast.Load, ast.operator, ast.unaryop)):
            continue
        if isinstance(node, ast.BinOp):
            if type(node.op) not in _BIN_OPS:
                raise ValueError(f"operator {type(node.op).__name__} is not allowed")
        elif isinstance(node, ast.UnaryOp):
            if type(node.op) not in _UNARY_OPS:
                raise ValueError(f"operator {type(node.op).__name__} is not allowed")
        elif isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise ValueError(f"literal {node.value!r} is not allowed")
        elif isinstance(node, ast.Call):
            if (
                not isinstance(node.func, ast.Name)
                or node.func.id not in FUNCTIONS
                or len(node.args) != 1
                or node.keywords
            ):
                raise ValueError("only single-argument whitelisted functions are allowed")
        elif isinstance(node, ast.Name):
            continue
        else:
            raise ValueError(f"{type(node).__name__} is not allowed in expressions")
    return tree


def _eval_node(node: ast.AST, env: dict[str, float]) -> float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body, env)
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.Name):
        if node.id in env:
            return float(env[node.id])
        if node.id in CONSTANTS:
            return CONSTANTS[node.id]
        raise ValueError(f"unknown name {node.id!r}")
    if isinstance(node, ast.UnaryOp):
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand, env))
    if isinstance(node, ast.BinOp):
        left = _eval_node(node.left, env)
        right = _eval_node(node.right, env)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError("exponent too large")
        return _BIN_OPS[type(node.op)](left, right)
    if isinstance(node, ast.Call):
        func = FUNCTIONS[node.func.id]  # type: ignore[attr-defined]
        return float(func(_eval_node(node.args[0], env)))
    raise ValueError(f"{type(node).__name__} is not allowed in expressions")


def evaluate(expr: str, variables: dict[str, float] | None = None) -> float:
    """Evaluate *expr* numerically; raise ``ValueError`` on anything unsafe or non-finite."""
    tree = parse_expression(expr)
    try:
        value = _eval_node(tree, dict(variables or {}))
    except (ZeroDivisionError, OverflowError, TypeError) as exc:
        raise ValueError(f"cannot evaluate {expr!r}: {exc}") from exc
    if isinstance(value, complex) or not math.isfinite(value):
        raise ValueError(f"{expr!r} does not evaluate to a finite real number")
    return float(value)


def compile_expression(expr: str, var: str = "x") -> Callable[[float], float]:
    """Return a one-variable callable; points where it is undefined yield ``nan``."""
    tree = parse_expression(expr)

    def _func(value: float) -> float:
        try:
            result = _eval_node(tree, {var: value})
        except (ValueError, ZeroDivisionError, OverflowError, TypeError):
            return math.nan
        if isinstance(result, complex):
            return math.nan
        return float(result)

    return _func


def to_number(value: Any) -> float:
    """Coerce a number, numeric string or constant expression to a finite float."""
    if isinstance(value, bool):
        raise ValueError("booleans are not coordinates")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            number = evaluate(value)
    else:
        raise ValueError(f"not a number: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


_SYMPY_FUNCS: dict[str, Any] = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "sqrt": sp.sqrt,
    "log": sp.log,
    "ln": sp.log,
    "exp": sp.exp,
    "abs": sp.Abs,
}


def _sympy_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Expression):
        return _sympy_node(node.body)
    if isinstance(node, ast.Constant):
        return sp.nsimplify(node.value) if isinstance(node.value, float) else sp.Integer(node.value)
    if isinstance(node, ast.Name):
        if node.id == "pi":
            return sp.pi
        if node.id == "e":
            return sp.E
        return sp.Symbol(node.id)
    if isinstance(node, ast.UnaryOp):
        operand = _sympy_node(node.operand)
        return -operand if isinstance(node.op, ast.USub) else operand
    if isinstance(node, ast.BinOp):
        left = _sympy_node(node.left)
        right = _sympy_node(node.right)
        if isinstance(node.op, ast.Pow) and right.is_number and abs(right) > _MAX_EXPONENT:
            raise ValueError("exponent too large")
        if isinstance(node.op, ast.Mod):
            return sp.Mod(left, right)
        return _BIN_OPS[type(node.op)](left, right)
    if isinstance(node, ast.Call):
        return _SYMPY_FUNCS[node.func.id](_sympy_node(node.args[0]))  # type: ignore[attr-defined]
    raise ValueError(f"{type(node).__name__} is not allowed in expressions")


def _const(node: ast.AST) -> float | None:
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.UnaryOp):
        value = _const(node.operand)
        if value is None:
            return None
        return -value if isinstance(node.op, ast.USub) else value
    return None


def _degree_bound(node: ast.AST) -> int:
    """Upper bound on the total degree :func:`sympy.expand` would produce."""
    if isinstance(node, ast.Expression):
        return _degree_bound(node.body)
    if isinstance(node, ast.Constant):
        return 0
    if isinstance(node, ast.Name):
        return 0 if node.id in ("pi", "e") else 1
    if isinstance(node, ast.UnaryOp):
        return _degree_bound(node.operand)
    if isinstance(node, ast.BinOp):
        left = _degree_bound(node.left)
        if isinstance(node.op, ast.Pow):
            exponent = _const(node.right)
            if exponent is None:
                return left + _degree_bound(node.right)
            return left * math.ceil(abs(exponent))
        right = _degree_bound(node.right)
        if isinstance(node.op, (ast.Add, ast.Sub)):
            return max(left, right)
        return left + right
    return 1


def to_sympy(expr: str) -> sp.Expr:
    """Build a SymPy expression by walking the whitelisted AST."""
    return _sympy_node(parse_expression(expr))


def quadratic_coefficients(expr: str, var: str = "x") -> tuple[float, float, float] | None:
    """Return ``(a, b, c)`` when *expr* is a degree-2 polynomial in *var*."""
    try:
        tree = parse_expression(expr)
        if _degree_bound(tree) > _MAX_EXPAND_DEGREE:
            return None
        sym_expr = sp.expand(_sympy_node(tree))
    except (ValueError, TypeError):
        return None
    x = sp.Symbol(var)
    if sym_expr.free_symbols - {x}:
        return None
    try:
        poly = sp.Poly(sym_expr, x)
    except sp.PolynomialError:
        return None
    if poly.degree() != 2:
        return None
    a, b, c = (float(poly.coeff_monomial(x**k)) for k in (2, 1, 0))
    return a, b, c


_PRECEDENCE: dict[type, int] = {
    ast.Add: 1,
    ast.Sub: 1,
    ast.Mult: 2,
    ast.Div: 2,
    ast.Mod: 2,
    ast.Pow: 4,
}
_PGF_OPS: dict[type, str] = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.Mod: "mod",
    ast.Pow: "^",
}


def _fmt_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def _pgf_prec(node: ast.AST) -> int:
    if isinstance(node, ast.BinOp):
        return _PRECEDENCE[type(node.op)]
    if isinstance(node, ast.UnaryOp):
        return 3
    return 5


def _pgf_node(node: ast.AST) -> str:
    if isinstance(node, ast.Expression):
        return _pgf_node(node.body)
    if isinstance(node, ast.Constant):
        return _fmt_number(node.value)
    if isinstance(node, ast.Name):
        if node.id == "e":
            return "exp(1)"
        return node.id
    if isinstance(node, ast.UnaryOp):
        inner = _pgf_node(node.operand)
        if _pgf_prec(node.operand) < 3:
            inner = f"({inner})"
        return f"-{inner}" if isinstance(node.op, ast.USub) else inner
    if isinstance(node, ast.BinOp):
        prec = _PRECEDENCE[type(node.op)]
        left = _pgf_node(node.left)
        right = _pgf_node(node.right)
        lp = _pgf_prec(node.left)
        rp = _pgf_prec(node.right)
        if lp < prec or (isinstance(node.op, ast.Pow) and lp <= prec):
            left = f"({left})"
        if rp < prec or (rp == prec and isinstance(node.op, (ast.Sub, ast.Div, ast.Mod))):
            right = f"({right})"
        if isinstance(node.op, ast.Mod):
            return f"mod({left},{right})"
        return f"{left}{_PGF_OPS[type(node.op)]}{right}"
    if isinstance(node, ast.Call):
        name = node.func.id  # type: ignore[attr-defined]
        arg = _pgf_node(node.args[0])
        if name in {"sin", "cos", "tan"}:
            return f"{name}(deg({arg}))"
        if name in {"asin", "acos", "atan"}:
            return f"rad({name}({arg}))"
        if name in {"log", "ln"}:
            return f"ln({arg})"
        return f"{name}({arg})"
    raise ValueError(f"{type(node).__name__} is not allowed in expressions")


def to_pgfplots(expr: str) -> str:
    """Render *expr* in pgfplots syntax; trigonometric arguments are radians."""
    return _pgf_node(parse_expression(expr))


_MATH_LITERAL_RE = re.compile(
    r"Math\.[A-Za-z]+(?:\s*\([^()]*\))?(?:\s*[*/]\s*(?:\d+(?:\.\d+)?|Math\.[A-Za-z]+(?:\s*\([^()]*\))?))*"
)


def substitute_math_literals(text: str) -> str:
    """Replace JavaScript ``Math.*`` forms in *text* with numeric literals.

    Forms that do not evaluate under the whitelist become ``null``.
    """

    def _replace(match: re.Match[str]) -> str:
        try:
            value = evaluate(match.group(0))
        except ValueError:
            return "null"
        return _fmt_number(round(value, 6))

    return _MATH_LITERAL_RE.sub(_replace, text)
