"""Tests for environment-driven settings."""

from decimal import Decimal

from cartflow import Settings
from cartflow.cart import MergePolicy
from cartflow.settings import HANOI_INNER_DISTRICTS


def test_defaults():
    settings = Settings()

    assert settings.vat_divisor == Decimal("1.1")
    assert settings.low_stock_threshold == 5
    assert settings.fallback_shipping_fee == 50_000
    assert settings.local_cart_key == "aims_cart_items"
    assert MergePolicy.parse(settings.merge_policy) is MergePolicy.UNION
    assert settings.rush_districts == HANOI_INNER_DISTRICTS


def test_from_env(monkeypatch):
    monkeypatch.setenv("CARTFLOW_FALLBACK_SHIPPING_FEE", "45000")
    monkeypatch.setenv("CARTFLOW_MERGE_POLICY", "remote-wins")
    monkeypatch.setenv("CARTFLOW_RUSH_DISTRICTS", "Ba Đình, Hoàn Kiếm")

    settings = Settings.from_env()

    assert settings.fallback_shipping_fee == 45_000
    assert MergePolicy.parse(settings.merge_policy) is MergePolicy.REMOTE_WINS
    assert settings.rush_districts == ("Ba Đình", "Hoàn Kiếm")


def test_from_env_file(tmp_path, monkeypatch):
    # setenv first so teardown removes whatever load_dotenv writes
    monkeypatch.setenv("CARTFLOW_LOW_STOCK_THRESHOLD", "0")
    monkeypatch.delenv("CARTFLOW_LOW_STOCK_THRESHOLD")
    env_file = tmp_path / ".env"
    env_file.write_text("CARTFLOW_LOW_STOCK_THRESHOLD=3\n", encoding="utf-8")

    settings = Settings.from_env(env_file)

    assert settings.low_stock_threshold == 3


def test_from_env_defaults_are_ints(tmp_path, monkeypatch):
    monkeypatch.delenv("CARTFLOW_LOW_STOCK_THRESHOLD", raising=False)
    monkeypatch.delenv("CARTFLOW_FALLBACK_SHIPPING_FEE", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("", encoding="utf-8")

    settings = Settings.from_env(env_file)

    assert settings.low_stock_threshold == 5
    assert settings.fallback_shipping_fee == 50_000


def test_public_names_resolve():
    import cartflow
    from cartflow import _types

    for module in (cartflow, _types):
        missing = [name for name in module.__all__ if not hasattr(module, name)]
        assert missing == []
    assert "LazyCoroResult" not in _types.__all__
