"""Tests for the background waitlist sweep."""

from sqlmodel import Session

from attendance.core import scheduler as scheduler_module
from attendance.core.scheduler import start_scheduler, sweep_job, sweep_waitlists
from attendance.registry.service import AttendanceRegistry
from helpers import attendee, confirmed_names, waitlist_positions


def raise_capacity(session: Session, event, capacity: int) -> None:
    event.capacity = capacity
    session.add(event)
    session.commit()


class TestSweepWaitlists:
    """Tests for sweep_waitlists."""

    def test_promotes_into_open_seats(self, engine, session: Session, registry: AttendanceRegistry, make_event):
        event = make_event(capacity=1, waitlist_enabled=True, waitlist_auto_promote=True)
        for name in ("a", "w1", "w2", "w3"):
            registry.register(event.id, attendee(name))
        raise_capacity(session, event, 3)

        stats = sweep_waitlists(engine)

        assert stats == {"events": 1, "promoted": 2, "failed": 0}
        assert confirmed_names(session, event.id) == {"a", "w1", "w2"}
        assert waitlist_positions(session, event.id) == {"w3": 1}

    def test_skips_events_without_auto_promote(
        self, engine, session: Session, registry: AttendanceRegistry, make_event
    ):
        event = make_event(capacity=1, waitlist_enabled=True)
        for name in ("a", "w1"):
            registry.register(event.id, attendee(name))
        raise_capacity(session, event, 2)

        stats = sweep_waitlists(engine)

        assert stats["events"] == 0
        assert waitlist_positions(session, event.id) == {"w1": 1}

    def test_full_events_promote_nobody(self, engine, registry: AttendanceRegistry, make_event):
        event = make_event(capacity=1, waitlist_enabled=True, waitlist_auto_promote=True)
        for name in ("a", "w1"):
            registry.register(event.id, attendee(name))

        assert sweep_waitlists(engine) == {"events": 1, "promoted": 0, "failed": 0}

    def test_failure_does_not_stop_other_events(self, engine, make_event, monkeypatch):
        broken = make_event(title="Broken", capacity=1, waitlist_enabled=True, waitlist_auto_promote=True)
        make_event(title="Fine", capacity=1, waitlist_enabled=True, waitlist_auto_promote=True)
        real_fill = AttendanceRegistry.fill_open_seats

        def fill_open_seats(self, event_id):
            if event_id == broken.id:
                raise RuntimeError("boom")
            return real_fill(self, event_id)

        monkeypatch.setattr(AttendanceRegistry, "fill_open_seats", fill_open_seats)

        stats = sweep_waitlists(engine)
        assert stats == {"events": 2, "promoted": 0, "failed": 1}


class TestSchedulerLifecycle:
    """Tests for job registration."""

    def test_disabled_when_interval_is_zero(self, monkeypatch):
        monkeypatch.setattr(scheduler_module.settings, "waitlist_sweep_interval_minutes", 0)
        started = []
        monkeypatch.setattr(scheduler_module.scheduler, "start", lambda: started.append(True))

        start_scheduler()

        assert started == []
        assert scheduler_module.scheduler.get_job("waitlist_sweep") is None

    def test_registers_sweep_job(self, monkeypatch):
        monkeypatch.setattr(scheduler_module.settings, "waitlist_sweep_interval_minutes", 10)
        started = []
        monkeypatch.setattr(scheduler_module.scheduler, "start", lambda: started.append(True))

        start_scheduler()
        try:
            job = scheduler_module.scheduler.get_job("waitlist_sweep")
            assert job is not None
            assert job.trigger.interval.total_seconds() == 600
            assert started == [True]
        finally:
            scheduler_module.scheduler.remove_job("waitlist_sweep")

    def test_sweep_job_swallows_errors(self, monkeypatch):
        def broken_sweep():
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(scheduler_module, "sweep_waitlists", broken_sweep)
        sweep_job()
