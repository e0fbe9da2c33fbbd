"""Typed list helpers generator for Go.

Emulates generic collection operations (Map, Filter, Reduce, Take/Drop,
Each, All/Any, ...) for a caller-chosen set of element types. Produces a
single gofmt-formatted Go file declaring one `<Alias>List` type per element
type with the selected methods on it, including cross-type Map/PMap methods
for every pair of requested types.

Usage:
    python listgen.py --package mypkg --types int,string:S --methods Map,Filter
"""

import argparse
import re
import subprocess
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PACKAGE = "main"
DEFAULT_OUTPUT = Path("listgen_auto.go")
DEFAULT_GOFMT = "gofmt"
GENERATOR_NAME = "listgen"


# ===--- CLI config contracts ---=== #


VALID_ERROR_CODES = {
    "MISSING_TYPES",
    "UNKNOWN_OPERATION",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


class FormatError(Exception):
    """Generated source failed syntactic validation."""


@dataclass(frozen=True)
class TypeSpec:
    """One requested element type.

    Attributes:
        canonical_name: Type token exactly as supplied, e.g. "int" or
            "map[string]int". Used verbatim in generated declarations.
        alias_name: Identifier fragment for the list type name and for the
            cross-type method suffix. Defaults to canonical_name.
    """

    canonical_name: str
    alias_name: str

    @property
    def list_name(self) -> str:
        return self.alias_name + "List"


@dataclass(frozen=True)
class GenerateConfig:
    package: str
    types: tuple[TypeSpec, ...]
    operations: frozenset[str]
    output: Path
    dry_run: bool = False
    gofmt: str = DEFAULT_GOFMT


_USAGE_EXAMPLES = """\
examples:
  listgen --package mypackage --types string,int,customType,AnotherType
      Creates stringList, intList, customTypeList and AnotherTypeList with
      every operation on them. Map and PMap are additionally generated as
      MapInt, MapCustomType, ... for every other requested type.

  listgen --types string,int:I,customType:CT,AnotherType:At
      Creates stringList, IList, CTList and AtList. stringList gets MapI,
      MapCT and MapAt in addition to Map. The package is 'main'.

  listgen --methods Map,Filter --types int
      Creates intList with only the Map and Filter methods.
"""


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=GENERATOR_NAME,
        description="Generate typed list helper methods for Go",
        epilog=_USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--package",
        type=str,
        default=DEFAULT_PACKAGE,
        help="Name of the generated package.",
    )
    parser.add_argument(
        "--types",
        type=str,
        default=None,
        help=(
            "Comma-separated type names, e.g. 'int,string,CustomType'. Each "
            "entry may carry an alias after a colon, e.g. 'int:I,CustomType:CT'."
        ),
    )
    parser.add_argument(
        "--methods",
        type=str,
        default="",
        help="Comma-separated methods to generate, e.g. 'Map,Filter'. Default: all.",
    )
    parser.add_argument(
        "--filename",
        type=Path,
        default=DEFAULT_OUTPUT,
        help="Output file for the generated package.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the generated code instead of writing it to a file.",
    )
    parser.add_argument(
        "--gofmt",
        type=str,
        default=DEFAULT_GOFMT,
        help="gofmt executable used to format and validate the output.",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig:
    type_map = parse_type_spec(args.types or "")
    if not type_map:
        raise ConfigError(
            "MISSING_TYPES",
            "--types is required: no types to generate.",
            "Pass a comma-separated list, e.g. --types int,string:S",
        )

    return GenerateConfig(
        package=args.package,
        types=build_type_specs(type_map),
        operations=parse_operation_spec(args.methods or ""),
        output=args.filename,
        dry_run=bool(args.dry_run),
        gofmt=args.gofmt,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig:
    return validate_config(parse_args(argv))


# ===--- Type set ---=== #


def parse_type_spec(raw: str) -> dict[str, str]:
    """Parse a `Type[:Alias],...` string into a canonical -> alias mapping.

    A repeated canonical type keeps its first position but takes the alias
    of its last occurrence. Names are not checked for identifier legality;
    that is left to the formatter.
    """
    mapping: dict[str, str] = {}
    if not raw:
        return mapping

    for entry in raw.split(","):
        if not entry:
            continue
        parts = entry.split(":")
        canonical = parts[0]
        alias = parts[1] if len(parts) > 1 and parts[1] else canonical
        mapping[canonical] = alias

    return mapping


def build_type_specs(mapping: dict[str, str]) -> tuple[TypeSpec, ...]:
    return tuple(
        TypeSpec(canonical_name=canonical, alias_name=alias)
        for canonical, alias in mapping.items()
    )


# ===--- Naming ---=== #


def _is_title_separator(ch: str) -> bool:
    if ch <= "\x7f":
        return not (ch.isalnum() or ch == "_")
    if ch.isalpha() or ch.isdigit():
        return False
    return ch.isspace()


def go_title(name: str) -> str:
    """Uppercase the first letter of every word, as Go's strings.Title does.

    Only the letter starting a word changes; the rest keep their case, so
    "fooBar" becomes "FooBar" and "my type" becomes "My Type".
    """
    chars: list[str] = []
    at_word_start = True
    for ch in name:
        chars.append(ch.upper() if at_word_start else ch)
        at_word_start = _is_title_separator(ch)
    return "".join(chars)


def cross_type_names(list_name: str, target_alias: str) -> tuple[str, str]:
    """Return (method suffix, target list name) for a cross-type method.

    An empty target_alias marks the identity case: no suffix, and the
    method returns the receiver's own list type.
    """
    if not target_alias:
        return "", list_name
    return go_title(target_alias), target_alias + "List"


# ===--- Templates ---=== #

# Every renderer takes (list_name, type_name, target_type, target_alias) and
# returns gofmt-canonical lines. Single-type renderers ignore the targets.

RenderFn = Callable[[str, str, str, str], list[str]]


def render_map(list_name, type_name, target_type, target_alias) -> list[str]:
    suffix, target_list = cross_type_names(list_name, target_alias)
    return [
        f"// Map{suffix} is a method on {list_name} that takes a function of type"
        f" {type_name} -> {target_type} and applies it to every member of {list_name}",
        f"func (l {list_name}) Map{suffix}(f func({type_name}) {target_type}) {target_list} {{",
        f"\tl2 := make({target_list}, len(l))",
        "\tfor i, t := range l {",
        "\t\tl2[i] = f(t)",
        "\t}",
        "\treturn l2",
        "}",
    ]


def render_pmap(list_name, type_name, target_type, target_alias) -> list[str]:
    suffix, target_list = cross_type_names(list_name, target_alias)
    return [
        f"// PMap{suffix} is similar to Map{suffix} except that it executes the"
        " function on each member in parallel.",
        f"func (l {list_name}) PMap{suffix}(f func({type_name}) {target_type}) {target_list} {{",
        "\twg := sync.WaitGroup{}",
        f"\tl2 := make({target_list}, len(l))",
        "\tfor i, t := range l {",
        "\t\twg.Add(1)",
        f"\t\tgo func(i int, t {type_name}) {{",
        "\t\t\tl2[i] = f(t)",
        "\t\t\twg.Done()",
        "\t\t}(i, t)",
        "\t}",
        "\twg.Wait()",
        "\treturn l2",
        "}",
    ]


def render_filter(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Filter is a method on {list_name} that takes a function of type"
        f" {type_name} -> bool returns a list of type {list_name} which contains"
        " all members from the original list for which the function returned true",
        f"func (l {list_name}) Filter(f func({type_name}) bool) {list_name} {{",
        f"\tl2 := []{type_name}{{}}",
        "\tfor _, t := range l {",
        "\t\tif f(t) {",
        "\t\t\tl2 = append(l2, t)",
        "\t\t}",
        "\t}",
        "\treturn l2",
        "}",
    ]


def render_pfilter(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        "// PFilter is similar to the Filter method except that the filter is"
        " applied to all the elements in parallel. The order of resulting"
        " elements cannot be guaranteed.",
        f"func (l {list_name}) PFilter(f func({type_name}) bool) {list_name} {{",
        "\twg := sync.WaitGroup{}",
        "\tmutex := sync.Mutex{}",
        f"\tl2 := []{type_name}{{}}",
        "\tfor _, t := range l {",
        "\t\twg.Add(1)",
        f"\t\tgo func(t {type_name}) {{",
        "\t\t\tif f(t) {",
        "\t\t\t\tmutex.Lock()",
        "\t\t\t\tl2 = append(l2, t)",
        "\t\t\t\tmutex.Unlock()",
        "\t\t\t}",
        "\t\t\twg.Done()",
        "\t\t}(t)",
        "\t}",
        "\twg.Wait()",
        "\treturn l2",
        "}",
    ]


def render_reduce(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Reduce is a method on {list_name} that takes a function of type"
        f" ({type_name}, {type_name}) -> {type_name} and returns a {type_name}"
        " which is the result of applying the function to all members of the"
        " original list starting from the first member",
        f"func (l {list_name}) Reduce(t1 {type_name}, f func({type_name}, {type_name})"
        f" {type_name}) {type_name} {{",
        "\tfor _, t := range l {",
        "\t\tt1 = f(t1, t)",
        "\t}",
        "\treturn t1",
        "}",
    ]


def render_reduce_right(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// ReduceRight is a method on {list_name} that takes a function of type"
        f" ({type_name}, {type_name}) -> {type_name} and returns a {type_name}"
        " which is the result of applying the function to all members of the"
        " original list starting from the last member",
        f"func (l {list_name}) ReduceRight(t1 {type_name}, f func({type_name}, {type_name})"
        f" {type_name}) {type_name} {{",
        "\tfor i := len(l) - 1; i >= 0; i-- {",
        "\t\tt := l[i]",
        "\t\tt1 = f(t, t1)",
        "\t}",
        "\treturn t1",
        "}",
    ]


def render_take(list_name, _type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Take is a method on {list_name} that takes an integer n and returns"
        " the first n elements of the original list. If the list contains fewer"
        " than n elements then the entire list is returned.",
        f"func (l {list_name}) Take(n int) {list_name} {{",
        "\tif len(l) >= n {",
        "\t\treturn l[:n]",
        "\t}",
        "\treturn l",
        "}",
    ]


def render_take_while(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// TakeWhile is a method on {list_name} that takes a function of type"
        f" {type_name} -> bool and returns a list of type {list_name} which"
        " includes only the first members from the original list for which the"
        " function returned true",
        f"func (l {list_name}) TakeWhile(f func({type_name}) bool) {list_name} {{",
        "\tfor i, t := range l {",
        "\t\tif !f(t) {",
        "\t\t\treturn l[:i]",
        "\t\t}",
        "\t}",
        "\treturn l",
        "}",
    ]


def render_drop(list_name, _type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Drop is a method on {list_name} that takes an integer n and returns"
        " all but the first n elements of the original list. If the list"
        " contains fewer than n elements then an empty list is returned.",
        f"func (l {list_name}) Drop(n int) {list_name} {{",
        "\tif len(l) >= n {",
        "\t\treturn l[n:]",
        "\t}",
        f"\tvar l2 {list_name}",
        "\treturn l2",
        "}",
    ]


def render_drop_while(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// DropWhile is a method on {list_name} that takes a function of type"
        f" {type_name} -> bool and returns a list of type {list_name} which"
        " excludes the first members from the original list for which the"
        " function returned true",
        f"func (l {list_name}) DropWhile(f func({type_name}) bool) {list_name} {{",
        "\tfor i, t := range l {",
        "\t\tif !f(t) {",
        "\t\t\treturn l[i:]",
        "\t\t}",
        "\t}",
        f"\tvar l2 {list_name}",
        "\treturn l2",
        "}",
    ]


def render_each(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Each is a method on {list_name} that takes a function of type"
        f" {type_name} -> void and applies the function to each member of the"
        " list and then returns the original list.",
        f"func (l {list_name}) Each(f func({type_name})) {list_name} {{",
        "\tfor _, t := range l {",
        "\t\tf(t)",
        "\t}",
        "\treturn l",
        "}",
    ]


def render_each_i(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// EachI is a method on {list_name} that takes a function of type"
        f" (int, {type_name}) -> void and applies the function to each member of"
        " the list and then returns the original list. The int parameter to the"
        " function is the index of the element.",
        f"func (l {list_name}) EachI(f func(int, {type_name})) {list_name} {{",
        "\tfor i, t := range l {",
        "\t\tf(i, t)",
        "\t}",
        "\treturn l",
        "}",
    ]


def render_all(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// All is a method on {list_name} that returns true if all the members"
        " of the list satisfy a function or if the list is empty.",
        f"func (l {list_name}) All(f func({type_name}) bool) bool {{",
        "\tfor _, t := range l {",
        "\t\tif !f(t) {",
        "\t\t\treturn false",
        "\t\t}",
        "\t}",
        "\treturn true",
        "}",
    ]


def render_any(list_name, type_name, _target_type, _target_alias) -> list[str]:
    return [
        f"// Any is a method on {list_name} that returns true if at least one"
        " member of the list satisfies a function. It returns false if the list"
        " is empty.",
        f"func (l {list_name}) Any(f func({type_name}) bool) bool {{",
        "\tfor _, t := range l {",
        "\t\tif f(t) {",
        "\t\t\treturn true",
        "\t\t}",
        "\t}",
        "\treturn false",
        "}",
    ]


# ===--- Operation registry ---=== #


@dataclass(frozen=True)
class OperationDescriptor:
    """One generatable method.

    Attributes:
        name: Method base name, e.g. "Map". Also the token accepted by
            --methods.
        render: Template function producing the method's Go lines.
        cross_type: True when the method is generated once per target type
            (MapInt, MapS, ...) rather than once per list type.
        needs_sync: True when the rendered body uses the "sync" package.
    """

    name: str
    render: RenderFn
    cross_type: bool = False
    needs_sync: bool = False


OPERATIONS: tuple[OperationDescriptor, ...] = (
    OperationDescriptor("Map", render_map, cross_type=True),
    OperationDescriptor("PMap", render_pmap, cross_type=True, needs_sync=True),
    OperationDescriptor("Filter", render_filter),
    OperationDescriptor("PFilter", render_pfilter, needs_sync=True),
    OperationDescriptor("Reduce", render_reduce),
    OperationDescriptor("ReduceRight", render_reduce_right),
    OperationDescriptor("Take", render_take),
    OperationDescriptor("TakeWhile", render_take_while),
    OperationDescriptor("Drop", render_drop),
    OperationDescriptor("DropWhile", render_drop_while),
    OperationDescriptor("Each", render_each),
    OperationDescriptor("EachI", render_each_i),
    OperationDescriptor("All", render_all),
    OperationDescriptor("Any", render_any),
)
"""Generation order for methods on every list type."""

OPERATIONS_BY_NAME: dict[str, OperationDescriptor] = {op.name: op for op in OPERATIONS}


# ===--- Operation selection ---=== #


def parse_operation_spec(raw: str) -> frozenset[str]:
    """Parse a comma-separated --methods value into a set of operation names.

    An empty value selects every registered operation.

    Raises:
        ConfigError: UNKNOWN_OPERATION naming the first token that is not a
            registered operation.
    """
    if not raw.strip():
        return frozenset(OPERATIONS_BY_NAME)

    selected: set[str] = set()
    for token in raw.split(","):
        name = token.strip()
        if name not in OPERATIONS_BY_NAME:
            raise ConfigError(
                "UNKNOWN_OPERATION",
                f"--methods value '{name}' is not a valid method",
                "Valid methods: " + ", ".join(op.name for op in OPERATIONS),
            )
        selected.add(name)
    return frozenset(selected)


def select_operations(selection: Iterable[str]) -> tuple[OperationDescriptor, ...]:
    selected = set(selection)
    return tuple(op for op in OPERATIONS if op.name in selected)


def needs_sync_import(selection: Iterable[str]) -> bool:
    return any(op.needs_sync for op in select_operations(selection))


# ===--- Unit expansion ---=== #


@dataclass(frozen=True)
class GenerationUnit:
    """One method to render: an operation bound to a source (and target) type.

    target is None for single-type operations. For cross-type operations it
    is the element type the method maps into, which may be the source type
    itself (the identity case).
    """

    operation: OperationDescriptor
    source: TypeSpec
    target: TypeSpec | None = None

    @property
    def is_identity(self) -> bool:
        return (
            self.target is not None
            and self.target.canonical_name == self.source.canonical_name
        )

    @property
    def suffix(self) -> str:
        if self.target is None or self.is_identity:
            return ""
        return go_title(self.target.alias_name)

    @property
    def method_name(self) -> str:
        return self.operation.name + self.suffix


def expand_type_units(
    source: TypeSpec,
    types: tuple[TypeSpec, ...],
    selection: Iterable[str],
) -> tuple[GenerationUnit, ...]:
    """Expand the selected operations for one source type.

    Operations are visited in registry order. A cross-type operation yields
    one unit per entry in types (source included, in types order); every
    other operation yields exactly one unit.

    Args:
        source: The list element type the methods are generated on.
        types: Every requested type, in generation order.
        selection: Names of operations to generate.

    Returns:
        Units in the order their methods appear in the output.
    """
    units: list[GenerationUnit] = []
    for op in select_operations(selection):
        if op.cross_type:
            for target in types:
                units.append(GenerationUnit(op, source, target))
        else:
            units.append(GenerationUnit(op, source))
    return tuple(units)


def expand_units(
    types: tuple[TypeSpec, ...], selection: Iterable[str]
) -> tuple[GenerationUnit, ...]:
    """Expand every requested type; K types give K*single + K*K*cross units."""
    selected = frozenset(selection)
    units: list[GenerationUnit] = []
    for source in types:
        units.extend(expand_type_units(source, types, selected))
    return tuple(units)


def render_unit(unit: GenerationUnit) -> list[str]:
    source = unit.source
    if unit.target is None:
        return unit.operation.render(source.list_name, source.canonical_name, "", "")
    target_alias = "" if unit.is_identity else unit.target.alias_name
    return unit.operation.render(
        source.list_name,
        source.canonical_name,
        unit.target.canonical_name,
        target_alias,
    )


# ===--- Assembly ---=== #


def format_file_header(package: str, needs_sync: bool) -> list[str]:
    """Return the generated-file banner, package clause and imports.

    Output format:
        // Package mypkg - generated by listgen; DO NOT EDIT
        package mypkg

        import "sync"

    The import line (and the blank line before it) is present only when
    needs_sync is True. No trailing blank line.
    """
    lines = [
        f"// Package {package} - generated by {GENERATOR_NAME}; DO NOT EDIT",
        f"package {package}",
    ]
    if needs_sync:
        lines.append("")
        lines.append('import "sync"')
    return lines


def render_type_section(
    source: TypeSpec, units: tuple[GenerationUnit, ...]
) -> list[str]:
    """Return the list type declaration for source followed by its methods.

    Every declaration is preceded by one blank line, so sections can be
    appended directly after the file header.
    """
    lines = [
        "",
        f"// {source.list_name} is the type for a list that holds members of"
        f" type {source.canonical_name}",
        f"type {source.list_name} []{source.canonical_name}",
    ]
    for unit in units:
        lines.append("")
        lines.extend(render_unit(unit))
    return lines


def assemble_units(
    package: str,
    types: tuple[TypeSpec, ...],
    units: tuple[GenerationUnit, ...],
) -> str:
    """Assemble the complete, unformatted Go source from expanded units.

    File structure:
        <file header>               <- format_file_header output
        <type section> ...          <- one per entry in types, in order

    Each type section renders the units whose source is that type, in the
    order they appear in units. The sync import is emitted when any unit's
    operation needs it.

    Args:
        package: Go package name for the package clause.
        types: Requested element types, in generation order.
        units: Units to render, normally from expand_units.

    Returns:
        Go source with a single trailing newline. Identical inputs always
        produce identical output.
    """
    by_source: dict[str, list[GenerationUnit]] = {t.canonical_name: [] for t in types}
    for unit in units:
        by_source[unit.source.canonical_name].append(unit)

    needs_sync = any(unit.operation.needs_sync for unit in units)
    parts: list[str] = format_file_header(package, needs_sync)
    for source in types:
        parts.extend(render_type_section(source, tuple(by_source[source.canonical_name])))
    return "\n".join(parts) + "\n"


def assemble_source(
    package: str,
    types: tuple[TypeSpec, ...],
    selection: Iterable[str],
) -> str:
    return assemble_units(package, types, expand_units(types, selection))


# ===--- Formatter ---=== #

GO_KEYWORDS = frozenset(
    "break case chan const continue default defer else fallthrough for func go"
    " goto if import interface map package range return select struct switch"
    " type var".split()
)

_IDENT_RE = re.compile(r"[^\W\d]\w*\Z")
_PACKAGE_RE = re.compile(r"^package[ \t]+(.*?)[ \t]*$", re.MULTILINE)
_TYPE_LINE_RE = re.compile(r"^type\b.*$", re.MULTILINE)
_TYPE_DECL_RE = re.compile(r"type[ \t]+(\S+)[ \t]+(\S.*?)[ \t]*")
_FUNC_LINE_RE = re.compile(r"^func\b.*$", re.MULTILINE)
_FUNC_DECL_RE = re.compile(r"func[ \t]+(?:\(\w+[ \t]+([^\s()]+)\)[ \t]+)?([^\s(]+)\(")
_TYPE_TOKEN_RE = re.compile(r"[^\W\d]\w*|\S")
_TYPE_KEYWORDS = frozenset({"chan", "func", "interface", "map", "struct"})
_CLOSERS = {")": "(", "]": "[", "}": "{"}


def is_go_identifier(name: str) -> bool:
    return bool(_IDENT_RE.match(name)) and name not in GO_KEYWORDS


def _line_of(source: str, index: int) -> int:
    return source.count("\n", 0, index) + 1


def _check_delimiters(source: str) -> None:
    stack: list[tuple[str, int]] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end == -1 else end
            continue
        if source.startswith("/*", i):
            end = source.find("*/", i + 2)
            if end == -1:
                raise FormatError(f"line {_line_of(source, i)}: unterminated comment")
            i = end + 2
            continue
        if ch == "`":
            end = source.find("`", i + 1)
            if end == -1:
                raise FormatError(f"line {_line_of(source, i)}: unterminated raw string")
            i = end + 1
            continue
        if ch in "\"'":
            j = i + 1
            while j < n and source[j] != ch:
                if source[j] == "\n":
                    break
                j += 2 if source[j] == "\\" else 1
            if j >= n or source[j] != ch:
                raise FormatError(f"line {_line_of(source, i)}: unterminated literal")
            i = j + 1
            continue
        if ch in "([{":
            stack.append((ch, i))
        elif ch in _CLOSERS:
            if not stack or stack[-1][0] != _CLOSERS[ch]:
                raise FormatError(f"line {_line_of(source, i)}: unexpected '{ch}'")
            stack.pop()
        i += 1

    if stack:
        opener, index = stack[-1]
        raise FormatError(f"line {_line_of(source, index)}: unclosed '{opener}'")


def _check_type_expr(type_expr: str, line: int) -> None:
    # Outside brackets a type is a single operand: two names in a row
    # ("my type") or a statement keyword cannot appear there.
    depth = 0
    after_name = False
    for token in _TYPE_TOKEN_RE.findall(type_expr):
        if token in "([{":
            depth += 1
        elif token in ")]}":
            depth -= 1
        elif depth == 0 and _IDENT_RE.match(token):
            if after_name or (token in GO_KEYWORDS and token not in _TYPE_KEYWORDS):
                raise FormatError(f"line {line}: invalid type {type_expr!r}")
            after_name = token not in GO_KEYWORDS
            continue
        after_name = False


def check_go_source(source: str) -> None:
    """Validate the structure of generated Go source.

    Checks balanced delimiters (ignoring comments and literals) and a
    package clause naming a valid identifier. Every top-level `type` and
    `func` line must parse as a declaration: type and method names must be
    valid Go identifiers, a list element type must be a single type
    operand, and no type or method (per receiver) may be declared twice.

    Raises:
        FormatError: On the first violation found.
    """
    _check_delimiters(source)

    package_match = _PACKAGE_RE.search(source)
    if package_match is None:
        raise FormatError("missing package clause")
    if not is_go_identifier(package_match.group(1)):
        raise FormatError(f"invalid package name: {package_match.group(1)!r}")

    declared_types: set[str] = set()
    for match in _TYPE_LINE_RE.finditer(source):
        line = _line_of(source, match.start())
        decl = _TYPE_DECL_RE.fullmatch(match.group())
        if decl is None:
            raise FormatError(f"line {line}: malformed type declaration")
        name, type_expr = decl.group(1), decl.group(2)
        if not is_go_identifier(name):
            raise FormatError(f"line {line}: invalid type name {name!r}")
        _check_type_expr(type_expr, line)
        if name in declared_types:
            raise FormatError(f"line {line}: {name} redeclared")
        declared_types.add(name)

    declared_methods: set[tuple[str, str]] = set()
    for match in _FUNC_LINE_RE.finditer(source):
        line = _line_of(source, match.start())
        decl = _FUNC_DECL_RE.match(match.group())
        if decl is None:
            raise FormatError(f"line {line}: malformed func declaration")
        receiver, method = decl.group(1) or "", decl.group(2)
        if not is_go_identifier(method):
            raise FormatError(f"line {line}: invalid method name {method!r}")
        if (receiver, method) in declared_methods:
            raise FormatError(f"line {line}: method {receiver}.{method} redeclared")
        declared_methods.add((receiver, method))


def format_go_source(source: str, gofmt: str = DEFAULT_GOFMT) -> str:
    """Validate source and canonicalize it with gofmt.

    When the gofmt executable cannot be found the built-in structural check
    is the only validation, and the source is returned unchanged (the
    templates already emit gofmt layout).

    Raises:
        FormatError: Built-in check failure, or gofmt exited non-zero.
    """
    check_go_source(source)
    try:
        result = subprocess.run(
            [gofmt],
            input=source,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        print(f"  Note: {gofmt} not found, using built-in validation", file=sys.stderr)
        return source
    except subprocess.CalledProcessError as err:
        raise FormatError(f"{gofmt} rejected generated source: {err.stderr.strip()}") from err
    return result.stdout


# ===--- Writer ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing the generated file.

    Attributes:
        filename: Filename written, e.g. "listgen_auto.go".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


def write_output(path: Path, source: str) -> FileWriteResult:
    """Write source to path, creating missing parent directories.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")
    resolved = path.resolve()
    return FileWriteResult(
        filename=path.name,
        path=resolved,
        line_count=source.count("\n"),
        byte_count=len(resolved.read_bytes()),
    )


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationCounts:
    """Unit counts for one run.

    Invariant: cross_units == types * types * (selected cross-type ops) and
    identity_units == types * (selected cross-type ops).
    """

    types: int
    single_units: int
    cross_units: int
    identity_units: int

    @property
    def total_units(self) -> int:
        return self.single_units + self.cross_units


@dataclass(frozen=True)
class GenerationSummary:
    package: str
    type_labels: tuple[str, ...]
    operation_names: tuple[str, ...]
    counts: GenerationCounts
    file: FileWriteResult


def build_generation_counts(
    types: tuple[TypeSpec, ...], units: tuple[GenerationUnit, ...]
) -> GenerationCounts:
    cross = [u for u in units if u.target is not None]
    return GenerationCounts(
        types=len(types),
        single_units=len(units) - len(cross),
        cross_units=len(cross),
        identity_units=sum(1 for u in cross if u.is_identity),
    )


def build_generation_summary(
    config: GenerateConfig,
    counts: GenerationCounts,
    file_result: FileWriteResult,
) -> GenerationSummary:
    return GenerationSummary(
        package=config.package,
        type_labels=tuple(f"{t.canonical_name}:{t.alias_name}" for t in config.types),
        operation_names=tuple(op.name for op in select_operations(config.operations)),
        counts=counts,
        file=file_result,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render the post-generation console report, ending in one newline."""
    counts = summary.counts
    lines = [
        f"Package {summary.package} generated:",
        "",
        f"  Types:       {', '.join(summary.type_labels)}",
        f"  Operations:  {', '.join(summary.operation_names)}",
        "",
        "  Methods generated:",
        f"    {'Single-type:':<14}{counts.single_units:>6}",
        f"    {'Cross-type:':<14}{counts.cross_units:>6}"
        + (f"  ({counts.identity_units} same-type)" if counts.identity_units else ""),
        f"    {'Total:':<14}{counts.total_units:>6}",
        "",
        f"  Output:      {summary.file.path}"
        f" ({summary.file.line_count:,} lines, {summary.file.byte_count:,} bytes)",
        "",
    ]
    return "\n".join(lines)


# ===--- Pipeline ---=== #


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one run. file is None for a dry run."""

    source: str
    counts: GenerationCounts
    file: FileWriteResult | None


def run_generate(config: GenerateConfig) -> GenerationResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    Stages: expand -> assemble -> format/validate -> write (or print for a
    dry run). Nothing is written unless every earlier stage succeeds.

    Raises:
        FormatError: The assembled source failed validation.
        OSError: Filesystem write failure.
    """
    verbose = not config.dry_run
    if verbose:
        print(
            f"Generating: package {config.package}, {len(config.types)} types, "
            f"{len(config.operations)} methods"
        )

    units = expand_units(config.types, config.operations)
    counts = build_generation_counts(config.types, units)
    if verbose:
        print(
            f"  Expanded: {counts.single_units} single-type, "
            f"{counts.cross_units} cross-type methods"
        )

    source = format_go_source(
        assemble_units(config.package, config.types, units),
        config.gofmt,
    )
    if verbose:
        line_count = source.count("\n")
        print(f"  Formatted: {line_count} lines")

    if config.dry_run:
        print(config.output)
        print(source, end="")
        return GenerationResult(source=source, counts=counts, file=None)

    file_result = write_output(config.output, source)
    print(f"  Written: {file_result.line_count} lines to {file_result.path}")
    print(
        format_generation_summary(build_generation_summary(config, counts, file_result)),
        end="",
    )
    return GenerationResult(source=source, counts=counts, file=file_result)


# ===--- Main generation ---=== #


def main(argv: list[str] | None = None):
    parser = build_argument_parser()
    try:
        config = validate_config(parser.parse_args(argv))
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}", file=sys.stderr)
        if err.suggestion:
            print(f"Hint: {err.suggestion}", file=sys.stderr)
        if err.code == "MISSING_TYPES":
            parser.print_help(sys.stderr)
            raise SystemExit(2) from err
        raise SystemExit(1) from err

    try:
        run_generate(config)
    except (OSError, FormatError) as err:
        print(f"Error: {err}", file=sys.stderr)
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
