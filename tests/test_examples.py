"""Testes para os exemplos."""

import importlib.util
from pathlib import Path

import pytest

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


def load_example(name):
    spec = importlib.util.spec_from_file_location(name, EXAMPLES_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_rotation_example_runs_and_cleans_up(tmp_path, monkeypatch):
    """Testa execução completa do exemplo de rotação."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KEY_ROTATION_FORMAT", "hex")

    load_example("rotation_example").main()

    assert not (tmp_path / "example_vault.env").exists()


def test_rotation_example_cleans_up_on_error(tmp_path, monkeypatch):
    """Testa que o arquivo do cofre é removido mesmo se a rotação falhar."""
    monkeypatch.chdir(tmp_path)
    example = load_example("rotation_example")

    def failing_run(env_file):
        env_file.write_text('PARCIAL="1"\n')
        raise RuntimeError("rotation failed")

    monkeypatch.setattr(example, "_run", failing_run)

    with pytest.raises(RuntimeError, match="rotation failed"):
        example.main()

    assert not (tmp_path / "example_vault.env").exists()
