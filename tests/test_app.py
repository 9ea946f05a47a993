import pytest

from eggforge.app import EggApp
from eggforge.config import EggForgeConfig, StorageConfig
from eggforge.domain.events import EGG_OPENED, EventBus
from eggforge.domain.results import Err, Ok
from eggforge.storage.memory import InMemoryAccountStore
from eggforge.testing import UserFactory, app_fixture


def test_snapshot_describes_configuration():
    app = app_fixture()
    snapshot = app.snapshot()
    assert snapshot["storage"] == "memory"
    assert len(snapshot["items"]) == 24
    assert snapshot["rare"] == ["Уилл", "Уилл из изнанки"]
    assert snapshot["credit_unit_price"] == 10


def test_unknown_backend_is_rejected():
    config = EggForgeConfig(bot_token="test", storage=StorageConfig(backend="redis"))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        EggApp(config)


def test_sqlalchemy_backend_is_the_default(tmp_path):
    config = EggForgeConfig(
        bot_token="test",
        storage=StorageConfig(dsn=f"sqlite+aiosqlite:///{(tmp_path / 'eggs.db').as_posix()}"),
    )
    app = EggApp(config)
    assert type(app.account_store).__name__ == "AsyncSQLAlchemyAccountStore"


def test_result_tags():
    assert Ok(1).is_ok
    assert not Err(ValueError("x")).is_ok


@pytest.mark.asyncio()
async def test_event_bus_subscription_management():
    bus = EventBus()
    seen = []

    async def listener(event):
        seen.append(event.name)

    bus.subscribe(EGG_OPENED, listener)
    assert bus.listeners(EGG_OPENED) == (listener,)
    event = await bus.publish(EGG_OPENED, {"item": "Майк"})
    assert event.payload == {"item": "Майк"}

    bus.unsubscribe(EGG_OPENED, listener)
    await bus.publish(EGG_OPENED, {})
    assert seen == [EGG_OPENED]

    bus.subscribe(EGG_OPENED, listener)
    bus.clear()
    assert bus.listeners(EGG_OPENED) == ()


@pytest.mark.asyncio()
async def test_user_factory_accounts_match_store_shape():
    account = UserFactory().build_account(free_credits=2)
    store = InMemoryAccountStore(free_credit_grant=2)
    created = await store.get_or_create(account.user_id, account.display_name)
    assert created.free_credits == account.free_credits
    assert created.display_name == account.display_name
