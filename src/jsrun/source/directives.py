"""Directive comments embedded in source scripts.

Parsing happens in two steps:

- :func:`scan` is a line scanner producing a stream of :class:`Directive`
  (tag, raw value, line number). It recognizes ``//TAG value`` lines and the
  legacy ``@GrabResolver`` / ``@Grab`` annotations.
- :func:`reduce_directives` folds that stream into an immutable
  :class:`Directives` record, validating each value against its tag's grammar.

``${name}`` placeholders are kept verbatim; substitution happens later, when
values are read from a :class:`~jsrun.source.source.Source`.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from jsrun.build.dependencies import parse_repository
from jsrun.source.errors import MalformedDirective
from jsrun.source.properties import has_placeholder

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

DEPS = "DEPS"
REPOS = "REPOS"
JAVAC_OPTIONS = "JAVAC_OPTIONS"
JAVA_OPTIONS = "JAVA_OPTIONS"
JAVA = "JAVA"
GAV = "GAV"
SOURCES = "SOURCES"
CDS = "CDS"
DESCRIPTION = "DESCRIPTION"
MANIFEST = "MANIFEST"

_TAG_ALIASES: dict[str, str] = {
    "COMPILE_OPTIONS": JAVAC_OPTIONS,
    "RUNTIME_OPTIONS": JAVA_OPTIONS,
}

KNOWN_TAGS: frozenset[str] = frozenset(
    {DEPS, REPOS, JAVAC_OPTIONS, JAVA_OPTIONS, JAVA, GAV, SOURCES, CDS, DESCRIPTION, MANIFEST}
)

_SHELL_TAGS: frozenset[str] = frozenset({JAVAC_OPTIONS, JAVA_OPTIONS, MANIFEST})

_DIRECTIVE_LINE = re.compile(r"^//(?P<tag>[A-Z][A-Z0-9_]*)(?:[ \t]+(?P<value>.*))?$")
_TRAILING_COMMENT = re.compile(r"(?:^|\s+)//.*$")
_GRAB_RESOLVER = re.compile(r"@GrabResolver\s*\((?P<args>[^)]*)\)")
_GRAB = re.compile(r"@Grab\s*\((?P<args>[^)]*)\)")
_KEYWORD_ARG = re.compile(r"(\w+)\s*=\s*\"([^\"]*)\"")
_POSITIONAL_ARG = re.compile(r"^\s*\"([^\"]*)\"\s*$")

_JAVA_VERSION = re.compile(r"^\d+(?:\.\d+)*\+?$")
_GAV = re.compile(r"^[^:\s]+:[^:\s]+(?::[^:\s]+)?$")

_SCALAR_GRAMMARS: dict[str, tuple[re.Pattern[str], str]] = {
    JAVA: (_JAVA_VERSION, "a version like 17 or 11+"),
    GAV: (_GAV, "group:artifact[:version]"),
}


@dataclass(frozen=True, slots=True)
class Directive:
    """One tagged value found in source text."""

    tag: str
    value: str
    line: int


class Directives(BaseModel):
    """Reduced directive values of one source file (placeholders unresolved)."""

    model_config = ConfigDict(frozen=True)

    dependencies: tuple[str, ...] = ()
    repositories: tuple[str, ...] = ()
    compile_options: tuple[str, ...] = ()
    runtime_options: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    java_version: str | None = None
    gav: str | None = None
    description: str | None = None
    cds: bool = False
    manifest: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


def _strip_comment(value: str) -> str:
    return _TRAILING_COMMENT.sub("", value).strip()


def _strip_quoted_comment(value: str) -> str:
    """Like :func:`_strip_comment`, but a ``//`` inside quotes is kept.

    Used for shell-tokenized values, where a quoted option may itself hold
    a space followed by ``//``.
    """
    quote: str | None = None
    escaped = False
    for i, ch in enumerate(value):
        if escaped:
            escaped = False
        elif ch == "\\" and quote != "'":
            escaped = True
        elif quote is not None:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif value.startswith("//", i) and (i == 0 or value[i - 1].isspace()):
            return value[:i].strip()
    return value.strip()


def _annotation_args(args: str) -> tuple[dict[str, str], str | None]:
    keywords = dict(_KEYWORD_ARG.findall(args))
    positional = _POSITIONAL_ARG.match(args)
    return keywords, positional.group(1) if positional else None


def _grab_resolver_value(args: str) -> str | None:
    keywords, positional = _annotation_args(args)
    if positional is not None:
        return positional
    root = keywords.get("root")
    if root is None:
        return None
    name = keywords.get("name")
    return f"{name}={root}" if name else root


def _grab_value(args: str) -> str | None:
    keywords, positional = _annotation_args(args)
    if positional is not None:
        return positional
    parts = [keywords.get(k) for k in ("group", "module", "version")]
    if not all(parts):
        return None
    classifier = keywords.get("classifier")
    if classifier:
        parts.append(classifier)
    return ":".join(p for p in parts if p)


def scan(text: str) -> Iterator[Directive]:
    """Yield directives in file order."""
    for lineno, line in enumerate(text.splitlines(), start=1):
        m = _DIRECTIVE_LINE.match(line.rstrip())
        if m is not None:
            tag = _TAG_ALIASES.get(m.group("tag"), m.group("tag"))
            if tag in KNOWN_TAGS:
                strip = _strip_quoted_comment if tag in _SHELL_TAGS else _strip_comment
                yield Directive(tag, strip(m.group("value") or ""), lineno)
            continue

        for gm in _GRAB_RESOLVER.finditer(line):
            value = _grab_resolver_value(gm.group("args"))
            if value is not None:
                yield Directive(REPOS, value, lineno)
        for gm in _GRAB.finditer(line):
            value = _grab_value(gm.group("args"))
            if value is not None:
                yield Directive(DEPS, value, lineno)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def _split_list(value: str) -> list[str]:
    return [t for t in re.split(r"[,\s]+", value) if t]


def _split_options(d: Directive, origin: str | None) -> list[str]:
    try:
        return shlex.split(d.value)
    except ValueError as e:
        raise MalformedDirective(d.tag, d.line, str(e), origin=origin) from e


def _check_repositories(d: Directive, tokens: list[str], origin: str | None) -> None:
    for token in tokens:
        if has_placeholder(token):
            continue
        try:
            parse_repository(token)
        except ValueError as e:
            raise MalformedDirective(d.tag, d.line, str(e), origin=origin) from e


def check_scalar(
    tag: str, value: str, *, line: int | None = None, origin: str | None = None
) -> str:
    """Validate a ``JAVA`` or ``GAV`` value against its grammar.

    Values still holding a ``${name}`` placeholder are returned unchecked;
    :class:`~jsrun.source.source.Source` checks them again once substituted.
    """
    if has_placeholder(value):
        return value
    pattern, expected = _SCALAR_GRAMMARS[tag]
    if not pattern.match(value):
        raise MalformedDirective(tag, line, f"expected {expected}, got {value!r}", origin=origin)
    return value


def reduce_directives(stream: Iterable[Directive], *, origin: str | None = None) -> Directives:
    """Fold a directive stream into a :class:`Directives` record.

    Multi-valued tags accumulate in file order. For ``JAVA`` and ``GAV`` the
    first occurrence wins.
    """
    lists: dict[str, list[str]] = {
        DEPS: [],
        REPOS: [],
        JAVAC_OPTIONS: [],
        JAVA_OPTIONS: [],
        SOURCES: [],
    }
    scalars: dict[str, str] = {}
    description: list[str] = []
    manifest: dict[str, str] = {}
    cds = False

    for d in stream:
        if d.tag in (DEPS, REPOS):
            tokens = _split_list(d.value)
            if d.tag == REPOS:
                _check_repositories(d, tokens, origin)
            lists[d.tag].extend(tokens)
        elif d.tag in (JAVAC_OPTIONS, JAVA_OPTIONS):
            lists[d.tag].extend(_split_options(d, origin))
        elif d.tag == SOURCES:
            lists[SOURCES].extend(d.value.split())
        elif d.tag in (JAVA, GAV):
            value = check_scalar(d.tag, d.value, line=d.line, origin=origin)
            if d.tag in scalars:
                logger.warning(
                    "Multiple //%s lines found in %s, only the first one is used",
                    d.tag,
                    origin or "source",
                )
                continue
            scalars[d.tag] = value
        elif d.tag == CDS:
            cds = True
        elif d.tag == DESCRIPTION:
            description.append(d.value)
        elif d.tag == MANIFEST:
            for token in _split_options(d, origin):
                key, sep, val = token.partition("=")
                if not sep or not key:
                    raise MalformedDirective(
                        d.tag, d.line, f"expected key=value, got {token!r}", origin=origin
                    )
                manifest[key] = val

    return Directives(
        dependencies=tuple(lists[DEPS]),
        repositories=tuple(lists[REPOS]),
        compile_options=tuple(lists[JAVAC_OPTIONS]),
        runtime_options=tuple(lists[JAVA_OPTIONS]),
        sources=tuple(lists[SOURCES]),
        java_version=scalars.get(JAVA),
        gav=scalars.get(GAV),
        description="\n".join(description) if description else None,
        cds=cds,
        manifest=manifest,
    )


def parse_directives(text: str, *, origin: str | None = None) -> Directives:
    return reduce_directives(scan(text), origin=origin)


def extract_dependencies(text: str) -> list[str]:
    """Raw dependency tokens declared in *text* (no validation)."""
    return [t for d in scan(text) if d.tag == DEPS for t in _split_list(d.value)]


def extract_repositories(text: str) -> list[str]:
    """Raw repository tokens declared in *text* (no validation)."""
    return [t for d in scan(text) if d.tag == REPOS for t in _split_list(d.value)]
