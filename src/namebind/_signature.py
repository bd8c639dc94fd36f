"""Recover declared parameter names from callables, classes and signature text."""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable


class _Unset:
    """Marker for a parameter value nobody supplied."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final[Any] = _Unset()

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True)
class DeclaredParameter:
    name: str
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD
    has_default: bool = False
    default: Any = UNSET  # UNSET when there is no default or its value is unknown


# Shapes a signature text can take, in priority order. Each pattern ends right
# after the opening bracket of the parameter list (or after ``lambda``); the
# flag says whether a leading receiver parameter is dropped.
_CLASS_CONSTRUCTOR = re.compile(r"^\s*(?:@[^\n]*\n\s*)*class\s.*?\bdef\s+__init__\s*\(", re.DOTALL)
_CALL_STYLE = re.compile(r"^\s*(?:async\s+)?(?:def\s+)?[A-Za-z_][\w.]*\s*\(")
_LAMBDA = re.compile(r"^\s*lambda\b")
_PARENTHESIZED = re.compile(r"^\s*\(")
_DECORATED_DEF = re.compile(r"^(?:\s*@[^\n]*\n)+\s*(?:async\s+)?def\s+\w+\s*\(")

_SHAPES: Final = (
    (_CLASS_CONSTRUCTOR, ")", "always"),
    (_CALL_STYLE, ")", "receiver"),
    (_LAMBDA, ":", "never"),
    (_PARENTHESIZED, ")", "never"),
    (_DECORATED_DEF, ")", "receiver"),
)

_RECEIVERS = frozenset({"self", "cls"})
# typing.Protocol puts one of these in every protocol class body
_PROTOCOL_INIT_PLACEHOLDERS = frozenset({"_no_init_or_replace_init", "_no_init"})
_ANNOTATION_OR_DEFAULT = re.compile(r"[:=]")
_WHITESPACE = re.compile(r"\s+")


def extract_parameter_names(target: Callable[..., Any] | str | None) -> list[str]:
    """Return the declared parameter names of ``target`` in order.

    ``target`` may be any callable or a textual signature such as
    ``"(db, cache=None)"``, ``"lambda db: ..."`` or a ``def`` line.
    Variadic parameters keep their stars (``"*args"``, ``"**kwargs"``).
    An empty list is returned when nothing can be extracted.
    """
    return [p.name for p in extract_parameters(target)]


def extract_parameters(target: Callable[..., Any] | str | None) -> list[DeclaredParameter]:
    if target is None:
        return []

    if isinstance(target, str):
        return parse_parameters(target)

    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        pass
    else:
        return [_declared(p) for p in signature.parameters.values()]

    return _parameters_from_source(target)


def constructor_parameters(cls: type) -> list[DeclaredParameter]:
    """Parameters of the first explicit constructor in ``cls``'s MRO, minus the receiver."""
    found = _explicit_constructor(cls)
    if found is None:
        return []

    owner, method_name = found
    member = vars(owner)[method_name]
    func = member.__func__ if isinstance(member, (staticmethod, classmethod)) else member

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return _parameters_from_source(owner)

    params = list(signature.parameters.values())
    if params and params[0].kind in _POSITIONAL:
        params = params[1:]
    return [_declared(p) for p in params]


def first_explicit_constructor(cls: type) -> type | None:
    """Walk the MRO from ``cls`` and return the class whose constructor receives the arguments.

    The first class defining ``__init__`` wins; only when no class does is the
    first class defining ``__new__`` used. ``object`` and the placeholder
    ``__init__`` that ``typing.Protocol`` installs never count; ``None`` means no
    class declares a constructor.
    """
    found = _explicit_constructor(cls)
    return None if found is None else found[0]


def _explicit_constructor(cls: type) -> tuple[type, str] | None:
    mro = [klass for klass in inspect.getmro(cls) if klass is not object]

    for klass in mro:
        member = vars(klass).get("__init__")
        if member is not None and getattr(member, "__name__", None) not in _PROTOCOL_INIT_PLACEHOLDERS:
            return klass, "__init__"

    for klass in mro:
        if "__new__" in vars(klass):
            return klass, "__new__"

    return None


def parse_parameters(text: str) -> list[DeclaredParameter]:
    """Parse a textual signature. Unrecognized text yields an empty list."""
    for pattern, terminator, receiver in _SHAPES:
        match = pattern.match(text)
        if match is None:
            continue

        items = _split_top_level(text, match.end(), terminator)
        if items is None:
            continue

        params = _declared_from_text(items)
        if params and (receiver == "always" or (receiver == "receiver" and params[0].name in _RECEIVERS)):
            params = params[1:]
        return params

    logger.debug("Unrecognized signature text: %.60r", text)
    return []


def _parameters_from_source(target: object) -> list[DeclaredParameter]:
    try:
        source = inspect.getsource(target)  # type: ignore[arg-type]
    except (OSError, TypeError):
        logger.debug("No signature or source available for %r", target)
        return []
    return parse_parameters(source)


def _declared(p: inspect.Parameter) -> DeclaredParameter:
    name = p.name
    if p.kind is p.VAR_POSITIONAL:
        name = f"*{name}"
    elif p.kind is p.VAR_KEYWORD:
        name = f"**{name}"

    if p.default is p.empty:
        return DeclaredParameter(name, p.kind)
    return DeclaredParameter(name, p.kind, has_default=True, default=p.default)


def _declared_from_text(items: list[str]) -> list[DeclaredParameter]:
    params: list[DeclaredParameter] = []
    keyword_only = False

    for item in items:
        name = _WHITESPACE.sub("", _ANNOTATION_OR_DEFAULT.split(item, maxsplit=1)[0])
        if not name or name == "/":
            continue
        if name == "*":
            keyword_only = True
            continue

        if name.startswith("**"):
            kind = inspect.Parameter.VAR_KEYWORD
        elif name.startswith("*"):
            kind = inspect.Parameter.VAR_POSITIONAL
            keyword_only = True
        elif keyword_only:
            kind = inspect.Parameter.KEYWORD_ONLY
        else:
            kind = inspect.Parameter.POSITIONAL_OR_KEYWORD

        params.append(DeclaredParameter(name, kind, has_default="=" in item))

    return params


def _split_top_level(text: str, pos: int, terminator: str) -> list[str] | None:  # noqa: C901
    """Split the parameter text starting at ``pos`` on top-level commas.

    Stops at the first top-level ``terminator``. Comments and the contents of
    string literals are dropped. Returns ``None`` if the list never ends.
    """
    items: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    i = pos

    while i < len(text):
        ch = text[i]

        if quote is not None:
            if ch == "\\":
                i += 2
            elif text.startswith(quote, i):
                i += len(quote)
                quote = None
            else:
                i += 1
            continue

        if ch in "\"'":
            quote = text[i : i + 3] if text[i : i + 3] in ('"""', "'''") else ch
            i += len(quote)
            continue

        if ch == "#":
            newline = text.find("\n", i)
            i = len(text) if newline == -1 else newline
            continue

        if depth == 0 and ch == terminator:
            items.append("".join(current))
            return items

        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "," and depth == 0:
            items.append("".join(current))
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    return None
