import pytest

from conftest import settle
from order_watch.engine import LifecycleState
from order_watch.schemas import AppStateEnum, RoleEnum
from order_watch.services.orders import MockOrderSource
from order_watch.services.sessions import SessionManager, SessionNotFound


@pytest.fixture
async def manager(settings, store, notifier):
    sources = []

    def source_factory(variant, token):
        source = MockOrderSource(split_history=variant.history_path is not None)
        sources.append(source)
        return source

    manager = SessionManager(
        settings=settings,
        store=store,
        source_factory=source_factory,
        notifier_factory=lambda push_token: notifier,
    )
    manager.sources = sources
    yield manager
    await manager.shutdown()


async def test_open_session_namespaces_by_role_and_user(manager):
    session = await manager.open_session(RoleEnum.DELIVERY, "jwt", user_id="rider-7")
    await settle(session.provider)

    assert session.provider.namespace == "delivery_rider-7"
    assert session.provider.controller.state is LifecycleState.RUNNING
    assert manager.get(session.session_id) is session
    assert len(manager) == 1


async def test_app_state_reports_flow_through_the_event_source(manager):
    session = await manager.open_session(RoleEnum.DELIVERY, "jwt", user_id="rider-7")
    await settle(session.provider)
    heartbeats = manager.sources[0].heartbeats

    await session.report_app_state(AppStateEnum.BACKGROUND)
    assert session.provider.controller.state is LifecycleState.SUSPENDED

    await session.report_app_state(AppStateEnum.ACTIVE)
    assert session.provider.controller.state is LifecycleState.RUNNING
    await settle(session.provider)
    assert manager.sources[0].heartbeats == heartbeats + 1


async def test_close_session_forgets_it(manager, store):
    session = await manager.open_session(RoleEnum.ADMIN, "jwt", user_id="owner")
    await settle(session.provider)

    await manager.close_session(session.session_id)

    assert store.data == {}
    with pytest.raises(SessionNotFound):
        manager.get(session.session_id)
    with pytest.raises(SessionNotFound):
        await manager.close_session(session.session_id)
