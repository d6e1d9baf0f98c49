from __future__ import annotations

from sqlmodel import Session, SQLModel, create_engine, select

from app.domain.models import EventEnvelope, EventRecord
from app.infra import events
from app.infra.context import set_request_context
from app.infra.events import EventBus


def test_event_bus_publish_and_subscribe() -> None:
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    bus = EventBus()
    seen: list[str] = []

    def handler(event: EventEnvelope) -> None:
        seen.append(event.event_id)

    event = EventEnvelope(
        event_type="manager_assignment.updated",
        payload={"manager_id": "m1", "employee_id": "e1", "assigned": True},
    )
    bus.subscribe("manager_assignment.updated", handler)

    with Session(engine) as session:
        bus.publish(event, session=session)
        session.commit()

    with Session(engine) as session:
        stored = session.exec(select(EventRecord)).all()

    assert len(stored) == 1
    assert stored[0].event_id == event.event_id
    assert stored[0].payload["employee_id"] == "e1"
    assert seen == [event.event_id]


def test_publish_dict_uses_request_actor_and_wildcard(monkeypatch, tmp_path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'events_test.db'}")
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(events, "engine", engine)

    bus = EventBus()
    seen: list[str] = []
    bus.subscribe("*", lambda event: seen.append(event.event_type))
    set_request_context("actor-1")

    published = bus.publish_dict("user.tags_replaced", {"user_id": "u1", "tags": []})
    set_request_context(None)

    with Session(engine) as session:
        stored = session.exec(select(EventRecord)).one()

    assert published.actor_id == "actor-1"
    assert stored.actor_id == "actor-1"
    assert stored.event_type == "user.tags_replaced"
    assert seen == ["user.tags_replaced"]
