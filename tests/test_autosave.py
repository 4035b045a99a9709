"""
Debounced, serialized autosave.
"""

import pytest

from services.letters import AutosaveScheduler, SaveError


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


@pytest.fixture
def timers():
    return []


@pytest.fixture
def timer_factory(timers):
    def _factory(delay, callback):
        timer = FakeTimer(delay, callback)
        timers.append(timer)
        return timer
    return _factory


class TestAutosaveScheduler:

    def test_debounces_to_latest_payload(self, timers, timer_factory):
        saved = []
        scheduler = AutosaveScheduler(saved.append, timer_factory=timer_factory)
        scheduler.touch({'subject': 'a'})
        scheduler.touch({'subject': 'ab'})
        scheduler.touch({'subject': 'abc'})

        assert [t.cancelled for t in timers] == [True, True, False]
        assert timers[-1].delay == 2.0

        timers[-1].fire()
        assert saved == [{'subject': 'abc'}]
        assert scheduler.save_count == 1

    def test_saves_never_overlap(self, timers, timer_factory):
        calls = []
        active = {'count': 0, 'max': 0}

        def save(payload):
            active['count'] += 1
            active['max'] = max(active['max'], active['count'])
            calls.append(payload)
            if payload == 'first':
                # An edit lands and its timer fires while this save is running
                scheduler.touch('second')
                timers[-1].fire()
            active['count'] -= 1

        scheduler = AutosaveScheduler(save, timer_factory=timer_factory)
        scheduler.touch('first')
        timers[-1].fire()

        assert calls == ['first', 'second']
        assert active['max'] == 1
        assert not scheduler.in_flight
        assert not scheduler.has_pending

    def test_edit_during_save_waits_for_its_own_timer(self, timers, timer_factory):
        calls = []

        def save(payload):
            calls.append(payload)
            if payload == 'first':
                scheduler.touch('second')

        scheduler = AutosaveScheduler(save, timer_factory=timer_factory)
        scheduler.touch('first')
        timers[0].fire()

        assert calls == ['first']
        assert scheduler.has_pending
        assert not scheduler.in_flight

        timers[-1].fire()
        assert calls == ['first', 'second']
        assert not scheduler.has_pending

    def test_flush_during_save_saves_after_it(self, timers, timer_factory):
        calls = []

        def save(payload):
            calls.append(payload)
            if payload == 'first':
                scheduler.touch('second')
                scheduler.flush()

        scheduler = AutosaveScheduler(save, timer_factory=timer_factory)
        scheduler.touch('first')
        timers[0].fire()

        assert calls == ['first', 'second']
        assert timers[-1].cancelled

    def test_only_latest_queued_payload_is_saved(self, timers, timer_factory):
        calls = []

        def save(payload):
            calls.append(payload)
            if payload == 1:
                for n in (2, 3, 4):
                    scheduler.touch(n)
                    timers[-1].fire()

        scheduler = AutosaveScheduler(save, timer_factory=timer_factory)
        scheduler.touch(1)
        timers[-1].fire()
        assert calls == [1, 4]

    def test_failure_is_logged_not_raised(self, timers, timer_factory, caplog):
        def save(payload):
            raise SaveError('Server unavailable', status_code=503)

        scheduler = AutosaveScheduler(save, timer_factory=timer_factory)
        scheduler.touch({'content': '<p>x</p>'})
        timers[-1].fire()

        assert isinstance(scheduler.last_error, SaveError)
        assert scheduler.save_count == 0
        assert 'Autosave failed' in caplog.text
        assert not scheduler.in_flight

    def test_cancel_drops_pending(self, timers, timer_factory):
        saved = []
        scheduler = AutosaveScheduler(saved.append, timer_factory=timer_factory)
        scheduler.touch('x')
        scheduler.cancel()
        timers[-1].fire()
        scheduler.flush()
        assert saved == []

    def test_flush_saves_immediately(self, timers, timer_factory):
        saved = []
        scheduler = AutosaveScheduler(saved.append, timer_factory=timer_factory)
        scheduler.touch('x')
        scheduler.flush()
        assert saved == ['x']
        assert timers[-1].cancelled
