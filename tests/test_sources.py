from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
PACKAGES = ("core", "shared", "services", "runtime", "scripts")
SOURCES = sorted(path for pkg in PACKAGES for path in (ROOT / pkg).rglob("*.py"))


@pytest.mark.parametrize("path", SOURCES, ids=lambda p: str(p.relative_to(ROOT)))
def test_module_compiles(path):
    compile(path.read_text(encoding="utf-8"), str(path), "exec")


def test_entry_point_docstrings_carry_version_banner():
    import core.app
    import scripts.validate_config

    for module in (core.app, scripts.validate_config):
        assert "Scoreboard vMix Bridge" in module.__doc__
