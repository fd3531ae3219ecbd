import pytest

from spendlog.core.config import Settings


def test_post_load_normalizes_and_creates_data_dir(tmp_path):
    settings = Settings(data_dir=tmp_path / "nested", rate_base_currency="usd")
    settings.init_post_load()
    assert settings.data_dir.is_dir()
    assert settings.rate_base_currency == "USD"


def test_unknown_rate_provider_rejected(tmp_path):
    settings = Settings(data_dir=tmp_path, exchange_rate_provider="fax")
    with pytest.raises(ValueError):
        settings.init_post_load()


def test_unknown_base_currency_rejected(tmp_path):
    settings = Settings(data_dir=tmp_path, rate_base_currency="xyz")
    with pytest.raises(ValueError):
        settings.init_post_load()
