"""Tests for engine configuration."""

import pytest

from formtree import EngineConfig, FormControl, NodeRegistry
from formtree.config import check_timings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "FORMTREE_VALIDATE_ON",
        "FORMTREE_VALIDATE_CONDITIONS",
        "FORMTREE_VALIDATE_DEBOUNCE",
        "FORMTREE_TOUCH_ON",
    ):
        monkeypatch.delenv(name, raising=False)


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.validate_on == ("change",)
        assert config.validate_conditions == ("touched",)
        assert config.validate_debounce == 0
        assert config.touch_on == "change"

    def test_single_timing_normalized_to_tuple(self):
        assert EngineConfig(validate_on="blur").validate_on == ("blur",)

    def test_unknown_timing_rejected(self):
        with pytest.raises(ValueError, match="Unknown validate timing 'submit'"):
            EngineConfig(validate_on=("change", "submit"))

    def test_unknown_touch_on_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(touch_on="hover")

    def test_negative_debounce_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(validate_debounce=-1)

    def test_check_timings(self):
        assert check_timings(["input", "blur"]) == ("input", "blur")
        assert check_timings("input") == ("input",)


class TestFromEnv:
    def test_empty_environment_gives_defaults(self):
        assert EngineConfig.from_env() == EngineConfig()

    def test_reads_variables(self, monkeypatch):
        monkeypatch.setenv("FORMTREE_VALIDATE_ON", "input, blur")
        monkeypatch.setenv("FORMTREE_VALIDATE_CONDITIONS", "touched,dirty")
        monkeypatch.setenv("FORMTREE_VALIDATE_DEBOUNCE", "250")
        monkeypatch.setenv("FORMTREE_TOUCH_ON", " blur ")

        config = EngineConfig.from_env()
        assert config.validate_on == ("input", "blur")
        assert config.validate_conditions == ("touched", "dirty")
        assert config.validate_debounce == 250
        assert config.touch_on == "blur"

    def test_invalid_timing_in_environment(self, monkeypatch):
        monkeypatch.setenv("FORMTREE_VALIDATE_ON", "keyup")
        with pytest.raises(ValueError):
            EngineConfig.from_env()


class TestRegistryConfig:
    def test_controls_inherit_registry_config(self):
        registry = NodeRegistry(config=EngineConfig(validate_on="blur", touch_on="blur", validate_debounce=40))
        control = FormControl(registry=registry)
        assert control.computed_validate_on == ("blur",)
        assert control.computed_validate_debounce == 40
        assert control.touch_on == "blur"
        registry.reset_all()

    def test_own_settings_override_config(self):
        registry = NodeRegistry(config=EngineConfig(validate_on="blur"))
        control = FormControl(validate_on="input", touch_on="input", registry=registry)
        assert control.computed_validate_on == ("input",)
        assert control.touch_on == "input"
        registry.reset_all()
