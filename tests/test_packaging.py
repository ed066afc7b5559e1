"""Checks that the installed distribution carries every source package."""

from __future__ import annotations

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="module")
def pyproject() -> dict:
    with open(ROOT / "pyproject.toml", "rb") as fh:
        return tomllib.load(fh)


def _source_packages() -> set[str]:
    found = set()
    for top in ("sitecrawl", "cli"):
        for module in (ROOT / top).rglob("*.py"):
            if "__pycache__" in module.parts:
                continue
            found.add(".".join(module.parent.relative_to(ROOT).parts))
    return found


def test_every_source_directory_is_packaged(pyproject) -> None:
    listed = set(pyproject["tool"]["setuptools"]["packages"])
    assert _source_packages() <= listed


def test_console_script_target_exists(pyproject) -> None:
    target = pyproject["project"]["scripts"]["sitecrawl"]
    module, _, attr = target.partition(":")
    assert (ROOT / Path(*module.split("."))).with_suffix(".py").exists()
    assert attr == "app"


def test_schema_is_package_data(pyproject) -> None:
    data = pyproject["tool"]["setuptools"]["package-data"]["sitecrawl.db"]
    assert "schema.sql" in data
    assert (ROOT / "sitecrawl" / "db" / "schema.sql").exists()
