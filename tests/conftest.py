import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import listgen  # noqa: E402


@pytest.fixture
def missing_gofmt() -> str:
    """A gofmt command that never resolves, so formatting uses the built-in check."""
    return "listgen-test-no-such-gofmt"


@pytest.fixture
def make_args(tmp_path: Path, missing_gofmt: str) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "package": "main",
            "types": "int",
            "methods": "",
            "filename": tmp_path / "out" / "lists_auto.go",
            "dry_run": False,
            "gofmt": missing_gofmt,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_types() -> Callable[[str], tuple[listgen.TypeSpec, ...]]:
    def _make_types(raw: str) -> tuple[listgen.TypeSpec, ...]:
        return listgen.build_type_specs(listgen.parse_type_spec(raw))

    return _make_types


@pytest.fixture
def make_config(
    tmp_path: Path,
    make_types: Callable[[str], tuple[listgen.TypeSpec, ...]],
    missing_gofmt: str,
) -> Callable[..., listgen.GenerateConfig]:
    def _make_config(
        *,
        types: str = "int",
        methods: str = "",
        package: str = "main",
        dry_run: bool = False,
        output: Path | None = None,
    ) -> listgen.GenerateConfig:
        return listgen.GenerateConfig(
            package=package,
            types=make_types(types),
            operations=listgen.parse_operation_spec(methods),
            output=tmp_path / "lists_auto.go" if output is None else output,
            dry_run=dry_run,
            gofmt=missing_gofmt,
        )

    return _make_config
