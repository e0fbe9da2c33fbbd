from collections.abc import Callable

import pytest

import listgen

TypesFactory = Callable[[str], tuple[listgen.TypeSpec, ...]]


def _render(name: str, target_type: str = "", target_alias: str = "") -> str:
    op = listgen.OPERATIONS_BY_NAME[name]
    return "\n".join(op.render("intList", "int", target_type, target_alias))


@pytest.mark.parametrize("op", listgen.OPERATIONS, ids=lambda op: op.name)
def test_every_template_starts_with_doc_comment_and_closes(
    op: listgen.OperationDescriptor,
) -> None:
    lines = op.render("intList", "int", "int", "")

    assert lines[0].startswith(f"// {op.name} ")
    assert lines[1].startswith(f"func (l intList) {op.name}(")
    assert lines[-1] == "}"
    assert all(not line.endswith((" ", "\t")) for line in lines)
    assert all(not line.startswith(" ") for line in lines)


def test_map_identity_returns_receiver_list_type() -> None:
    text = _render("Map", "int", "")

    assert "func (l intList) Map(f func(int) int) intList {" in text
    assert "\tl2 := make(intList, len(l))" in text
    assert "\t\tl2[i] = f(t)" in text


def test_map_cross_type_returns_target_alias_list() -> None:
    text = _render("Map", "string", "str")

    assert "// MapStr is a method on intList" in text
    assert "func (l intList) MapStr(f func(int) string) strList {" in text
    assert "\tl2 := make(strList, len(l))" in text


def test_pmap_writes_each_result_into_its_own_slot() -> None:
    text = _render("PMap", "string", "S")

    assert "func (l intList) PMapS(f func(int) string) SList {" in text
    assert "\twg := sync.WaitGroup{}" in text
    assert "\tl2 := make(SList, len(l))" in text
    assert "\t\tgo func(i int, t int) {" in text
    assert "\t\t\tl2[i] = f(t)" in text
    assert text.index("\t\t}(i, t)") < text.index("\twg.Wait()") < text.index("\treturn l2")
    assert "Mutex" not in text


def test_filter_appends_in_order() -> None:
    text = _render("Filter")

    assert "func (l intList) Filter(f func(int) bool) intList {" in text
    assert "\tl2 := []int{}" in text
    assert "\t\t\tl2 = append(l2, t)" in text
    assert "go func" not in text


def test_pfilter_guards_append_with_mutex() -> None:
    text = _render("PFilter")

    lock = text.index("mutex.Lock()")
    append = text.index("l2 = append(l2, t)")
    unlock = text.index("mutex.Unlock()")
    assert lock < append < unlock
    assert "\tmutex := sync.Mutex{}" in text
    assert "\t\tgo func(t int) {" in text
    assert "order of resulting elements cannot be guaranteed" in text


def test_reduce_folds_left_from_seed() -> None:
    text = _render("Reduce")

    assert "func (l intList) Reduce(t1 int, f func(int, int) int) int {" in text
    assert "\tfor _, t := range l {" in text
    assert "\t\tt1 = f(t1, t)" in text


def test_reduce_right_folds_from_last_element() -> None:
    text = _render("ReduceRight")

    assert "func (l intList) ReduceRight(t1 int, f func(int, int) int) int {" in text
    assert "\tfor i := len(l) - 1; i >= 0; i-- {" in text
    assert "\t\tt1 = f(t, t1)" in text


def test_take_and_drop_clamp_at_list_length() -> None:
    take = _render("Take")
    drop = _render("Drop")

    assert "func (l intList) Take(n int) intList {" in take
    assert "\tif len(l) >= n {\n\t\treturn l[:n]\n\t}\n\treturn l\n}" in take
    assert "func (l intList) Drop(n int) intList {" in drop
    assert "\tif len(l) >= n {\n\t\treturn l[n:]\n\t}\n\tvar l2 intList\n\treturn l2\n}" in drop


def test_take_while_and_drop_while_stop_at_first_failure() -> None:
    take_while = _render("TakeWhile")
    drop_while = _render("DropWhile")

    # Always-true predicate falls through to the whole list / empty list.
    assert "\t\tif !f(t) {\n\t\t\treturn l[:i]\n\t\t}\n\t}\n\treturn l\n}" in take_while
    assert (
        "\t\tif !f(t) {\n\t\t\treturn l[i:]\n\t\t}\n\t}\n\tvar l2 intList\n\treturn l2\n}"
        in drop_while
    )


def test_each_variants_return_receiver_for_chaining() -> None:
    each = _render("Each")
    each_i = _render("EachI")

    assert "func (l intList) Each(f func(int)) intList {" in each
    assert "\t\tf(t)" in each
    assert "func (l intList) EachI(f func(int, int)) intList {" in each_i
    assert "\t\tf(i, t)" in each_i
    assert each.endswith("\treturn l\n}")
    assert each_i.endswith("\treturn l\n}")


def test_all_and_any_short_circuit() -> None:
    all_text = _render("All")
    any_text = _render("Any")

    assert "\t\tif !f(t) {\n\t\t\treturn false" in all_text
    assert all_text.endswith("\treturn true\n}")
    assert "\t\tif f(t) {\n\t\t\treturn true" in any_text
    assert any_text.endswith("\treturn false\n}")


def test_format_file_header_without_sync() -> None:
    assert listgen.format_file_header("lists", needs_sync=False) == [
        "// Package lists - generated by listgen; DO NOT EDIT",
        "package lists",
    ]


def test_format_file_header_with_sync_imports_once() -> None:
    lines = listgen.format_file_header("main", needs_sync=True)

    assert lines[-2:] == ["", 'import "sync"']


def test_render_type_section_declares_list_then_methods(
    make_types: TypesFactory,
) -> None:
    types = make_types("string:S")
    units = listgen.expand_type_units(types[0], types, {"Take"})

    lines = listgen.render_type_section(types[0], units)

    assert lines[:3] == [
        "",
        "// SList is the type for a list that holds members of type string",
        "type SList []string",
    ]
    assert lines[3] == ""
    assert lines[5] == "func (l SList) Take(n int) SList {"


def test_assemble_two_types_map_scenario(make_types: TypesFactory) -> None:
    source = listgen.assemble_source("main", make_types("int,string:S"), {"Map"})

    assert "type intList []int" in source
    assert "type SList []string" in source
    assert "func (l intList) Map(f func(int) int) intList {" in source
    assert "func (l intList) MapS(f func(int) string) SList {" in source
    assert "func (l SList) MapInt(f func(string) int) intList {" in source
    assert "func (l SList) Map(f func(string) string) SList {" in source
    assert "import" not in source
    assert source.index("type intList") < source.index("type SList")


def test_assemble_single_type_all_operations_scenario(make_types: TypesFactory) -> None:
    source = listgen.assemble_source("main", make_types("int"), {op.name for op in listgen.OPERATIONS})

    assert source.count("\ntype ") == 1
    for op in listgen.OPERATIONS:
        assert f"func (l intList) {op.name}(" in source
    assert source.count('import "sync"') == 1
    assert "MapInt" not in source


def test_assemble_source_is_deterministic(make_types: TypesFactory) -> None:
    types = make_types("int,string:S,Foo:F")
    selection = {op.name for op in listgen.OPERATIONS}

    first = listgen.assemble_source("main", types, selection)
    second = listgen.assemble_source("main", types, list(reversed(sorted(selection))))

    assert first == second


def test_assemble_source_layout(make_types: TypesFactory) -> None:
    source = listgen.assemble_source("main", make_types("int"), {"All", "PFilter"})

    assert source.startswith(
        "// Package main - generated by listgen; DO NOT EDIT\n"
        "package main\n"
        "\n"
        'import "sync"\n'
        "\n"
        "// intList is the type for a list"
    )
    assert source.endswith("}\n")
    assert not source.endswith("\n\n")
    assert "\n\n\n" not in source
    assert source.index(") PFilter(") < source.index(") All(")


def test_assembled_source_passes_structural_check(make_types: TypesFactory) -> None:
    source = listgen.assemble_source(
        "lists", make_types("int,string:S,map[string]int:M,*Foo:PFoo"),
        {op.name for op in listgen.OPERATIONS},
    )

    listgen.check_go_source(source)


def test_assemble_units_renders_only_the_given_units(make_types: TypesFactory) -> None:
    types = make_types("int,string:S")
    units = listgen.expand_units(types, {"Map", "PFilter"})
    kept = tuple(unit for unit in units if not unit.operation.needs_sync)

    source = listgen.assemble_units("main", types, kept)

    assert source.count("\nfunc (l ") == len(kept) == 4
    assert "PFilter" not in source
    assert "import" not in source
    assert "type SList []string" in source
    assert source == listgen.assemble_source("main", types, {"Map"})
