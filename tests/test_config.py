"""Tests for environment-driven configuration."""

import importlib.util

import wa_gateway.config


def load_fresh_config():
    """Evaluate config.py again without replacing the module the app already imported."""
    spec = importlib.util.spec_from_file_location("config_under_test", wa_gateway.config.__file__)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.Config


def test_default_tenant_id_is_read_from_its_own_env_key(monkeypatch):
    monkeypatch.setenv("DEFAULT_TENANT_ID", "acme")
    monkeypatch.setenv("TENANT_ID", "ignored")

    assert load_fresh_config().DEFAULT_TENANT_ID == "acme"


def test_default_tenant_id_falls_back_to_mvp(monkeypatch):
    monkeypatch.delenv("DEFAULT_TENANT_ID", raising=False)
    monkeypatch.setenv("TENANT_ID", "ignored")

    assert load_fresh_config().DEFAULT_TENANT_ID == "mvp"


def test_state_backend_is_normalized(monkeypatch):
    monkeypatch.setenv("STATE_BACKEND", "Memory")

    assert load_fresh_config().STATE_BACKEND == "memory"
