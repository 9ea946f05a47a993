import pytest

from eggforge.config import EggForgeConfig, StorageConfig


def test_defaults_are_durable():
    config = EggForgeConfig()
    assert config.storage.backend == "sqlalchemy"
    assert config.storage.resolve_dsn() == "sqlite+aiosqlite:///./eggforge.db"
    assert config.ledger.free_credit_grant == 5
    assert config.payments.currency == "XTR"
    assert config.payments.credit_unit_price == 10


def test_memory_backend_has_no_dsn():
    assert StorageConfig(backend="memory").resolve_dsn() is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("EGGFORGE_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("EGGFORGE_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("EGGFORGE_FREE_CREDIT_GRANT", "3")
    monkeypatch.setenv("EGGFORGE_CREDIT_UNIT_PRICE", "25")
    monkeypatch.setenv("EGGFORGE_ADMIN_IDS", "1, 2")
    monkeypatch.setenv("EGGFORGE_ADMIN_CMD_AUDIT", "log")
    monkeypatch.setenv("EGGFORGE_CATALOG_RARE_WEIGHTS", '{"Уилл": 0.001}')
    monkeypatch.setenv("EGGFORGE_RNG_SEED", "7")

    config = EggForgeConfig.from_env()
    assert config.bot_token == "123:abc"
    assert config.storage.backend == "memory"
    assert config.ledger.free_credit_grant == 3
    assert config.payments.credit_unit_price == 25
    assert config.admin.admin_ids == {1, 2}
    assert config.admin.commands.audit == "log"
    assert config.catalog.rare == {"Уилл": 0.001}
    assert config.rng_seed == 7


def test_from_env_rejects_unknown_backend(monkeypatch):
    monkeypatch.setenv("EGGFORGE_STORAGE_BACKEND", "redis")
    with pytest.raises(ValueError):
        EggForgeConfig.from_env()


def test_from_env_rejects_bad_rare_weights(monkeypatch):
    monkeypatch.setenv("EGGFORGE_CATALOG_RARE_WEIGHTS", "[1, 2]")
    with pytest.raises(ValueError):
        EggForgeConfig.from_env()
