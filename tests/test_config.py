from __future__ import annotations

from pathlib import Path

import pytest

from shortgate import config
from shortgate.exceptions import ConfigError
from shortgate.model import ForbiddenCallSpec


def test_load_settings_defaults_without_file(tmp_path: Path) -> None:
    settings = config.load_settings(root=tmp_path)
    assert settings.root == tmp_path.resolve()
    assert settings.layout.test_suffix == "_test.py"
    assert settings.layout.integration_suffix == "_integ_test.py"
    assert settings.checks.forbidden_calls == config.DEFAULT_FORBIDDEN_CALLS
    assert settings.checks.short_predicate == "testing.short"
    assert settings.whitelist.paths == ()
    assert ".git" in settings.walk.exclude_dirs


def test_load_config_default_path(tmp_path: Path) -> None:
    cfg = tmp_path / config.DEFAULT_CONFIG_NAME
    cfg.write_text("[layout]\ne2e_dir = 'acceptance'\n", encoding="utf-8")
    data = config.load_config(root=tmp_path, config_path=None)
    assert data["layout"]["e2e_dir"] == "acceptance"
    assert config.load_settings(root=tmp_path).layout.e2e_dir == "acceptance"


def test_explicit_config_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="config file not found"):
        config.load_settings(root=tmp_path, config_path=tmp_path / "missing.toml")


def test_invalid_toml_is_a_config_error(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.toml"
    cfg.write_text("not = [toml", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid TOML"):
        config.load_settings(config_path=cfg)


def test_explicit_config_sets_whitelist_base(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "conf"
    cfg_dir.mkdir()
    cfg = cfg_dir / "custom.toml"
    cfg.write_text("[whitelist]\npaths = ['a,b_test.py', 'vendor/']\n", encoding="utf-8")
    settings = config.load_settings(root=tmp_path, config_path=cfg)
    assert settings.root == cfg_dir.resolve()
    assert settings.whitelist.paths == ("a,b_test.py", "vendor/")


def test_check_lists_accept_comma_strings(make_settings) -> None:
    settings = make_settings({"checks": {"forbidden_calls": "time.sleep, os.system, time.sleep"}})
    assert settings.checks.forbidden_calls == ("time.sleep", "os.system")
    assert settings.checks.forbidden_specs() == (
        ForbiddenCallSpec("time", "sleep"),
        ForbiddenCallSpec("os", "system"),
    )


@pytest.mark.parametrize(
    ("data", "needle"),
    [
        ({"checks": {"forbidden_calls": ["sleep"]}}, "checks.forbidden_calls"),
        ({"checks": {"short_predicate": "short"}}, "checks.short_predicate"),
        ({"checks": {"forbidden_calls": ["os.path.join"]}}, "checks.forbidden_calls"),
        ({"checks": {"skip_calls": "pytest.mark.skip"}}, "checks.skip_calls"),
        ({"checks": {"unknown": 1}}, "checks.unknown"),
        ({"layout": {"test_suffix": "  "}}, "layout.test_suffix"),
        ({"strictness": "high"}, "unexpected top-level keys: strictness"),
    ],
)
def test_invalid_values_raise_config_error(make_settings, data: dict[str, object], needle: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        make_settings(data)
    assert needle in str(excinfo.value)


def test_forbidden_call_spec_parse() -> None:
    spec = ForbiddenCallSpec.parse(" os.system ")
    assert spec == ForbiddenCallSpec("os", "system")
    assert spec.render() == "os.system()"
    for bad in ("sleep", ".sleep", "time.", "os.path.join", "time.sleep()", "my-mod.run"):
        with pytest.raises(ConfigError):
            ForbiddenCallSpec.parse(bad)


def test_config_error_prefixes_path() -> None:
    assert str(ConfigError("boom", path="shortgate.toml")) == "shortgate.toml: boom"
    assert str(ConfigError("boom")) == "boom"


def test_normalize_name_list() -> None:
    assert config._normalize_name_list(None) == []
    assert config._normalize_name_list("a, b,,") == ["a", "b"]
    assert config._normalize_name_list(["a, b", "c", 3]) == ["a", "b", "c"]
