from __future__ import annotations

import os
from pathlib import Path

import pytest

from order_desk.config import DEFAULT_INIT_ATTEMPTS, DEFAULT_PASSWORD_ITERATIONS, load_settings

ENV_NAMES = (
    "ORDER_DESK_DB",
    "ORDER_DESK_INIT_ATTEMPTS",
    "ORDER_DESK_INIT_DELAY",
    "ORDER_DESK_PASSWORD_ITERATIONS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_place_db_under_project_var(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[project]\nname='x'\n", encoding="utf-8")
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)

    settings = load_settings(str(nested))

    assert settings.db_path == os.path.join(str(tmp_path), "var", "orderdb", "orders.sqlite3")
    assert settings.init_attempts == DEFAULT_INIT_ATTEMPTS
    assert settings.password_iterations == DEFAULT_PASSWORD_ITERATIONS


def test_dotenv_values_are_read_without_touching_environ(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "ORDER_DESK_DB=data/shop.sqlite3\nORDER_DESK_INIT_ATTEMPTS=5\nORDER_DESK_INIT_DELAY=0.25\n",
        encoding="utf-8",
    )
    cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        settings = load_settings(str(tmp_path))
    finally:
        os.chdir(cwd)

    assert settings.db_path == os.path.join(str(tmp_path), "data", "shop.sqlite3")
    assert settings.init_attempts == 5
    assert settings.init_delay == 0.25
    assert "ORDER_DESK_DB" not in os.environ


def test_environment_overrides_dotenv_and_argument_overrides_both(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env").write_text("ORDER_DESK_DB=/from/dotenv.sqlite3\n", encoding="utf-8")
    monkeypatch.setenv("ORDER_DESK_DB", ":memory:")

    assert load_settings(str(tmp_path)).db_path == ":memory:"
    explicit = str(tmp_path / "explicit.sqlite3")
    assert load_settings(str(tmp_path), db_path=explicit).db_path == explicit


@pytest.mark.parametrize(
    "name,raw,attr,expected",
    [
        ("ORDER_DESK_INIT_ATTEMPTS", "lots", "init_attempts", DEFAULT_INIT_ATTEMPTS),
        ("ORDER_DESK_INIT_ATTEMPTS", "0", "init_attempts", DEFAULT_INIT_ATTEMPTS),
        ("ORDER_DESK_INIT_DELAY", "-1", "init_delay", 1.0),
        ("ORDER_DESK_PASSWORD_ITERATIONS", "1e5", "password_iterations", DEFAULT_PASSWORD_ITERATIONS),
    ],
)
def test_malformed_values_fall_back_to_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, name: str, raw: str, attr: str, expected
) -> None:
    monkeypatch.setenv(name, raw)
    assert getattr(load_settings(str(tmp_path), db_path=":memory:"), attr) == expected
