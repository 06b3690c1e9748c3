"""
Host Event Loop
===============
Single-threaded, cooperative scheduling for the renderer.

Time is a virtual millisecond clock driven by `sched.scheduler`, so the same
code runs headless (advance the clock as fast as possible) and under tests
(advance it by exact amounts). Three primitives:

  Timer      : fire-once callback (`call_later`), cancellable
  Ticker     : per-animation-frame callback until stopped
  Transition : eased numeric style change on a scene element
"""

import itertools
import sched

from config import FRAME_MS


def ease_cubic_in_out(t):
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


class Timer:
    """Handle for one scheduled callback. `cancel()` is a no-op once fired."""

    def __init__(self, timeline, delay, action, args):
        self._timeline = timeline
        self._action = action
        self._args = args
        self.pending = True
        # unique priority: sched.cancel() matches events by (time, priority)
        self._event = timeline._scheduler.enter(delay, next(timeline._sequence), self._fire)

    def _fire(self):
        self.pending = False
        self._action(*self._args)

    def cancel(self):
        if self.pending:
            self.pending = False
            self._timeline._scheduler.cancel(self._event)


class Ticker:
    """Calls `callback()` once per frame while active."""

    def __init__(self, timeline, callback):
        self._timeline = timeline
        self._callback = callback
        self._timer = None

    @property
    def active(self):
        return self._timer is not None and self._timer.pending

    def restart(self, callback=None):
        if callback is not None:
            self._callback = callback
        self.stop()
        self._timer = self._timeline.call_later(self._timeline.frame_ms, self._frame)
        return self

    def stop(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return self

    def _frame(self):
        # schedule first so the callback may stop us
        self._timer = self._timeline.call_later(self._timeline.frame_ms, self._frame)
        self._callback()


class Transition:
    """Interpolates numeric styles of `element` over `duration` ms.

    Starting values are captured on the first frame. A new transition on the
    same element interrupts this one. `remove()` detaches the element when the
    transition completes.
    """

    def __init__(self, element, timeline, duration, delay=0, ease=ease_cubic_in_out):
        self.element = element
        self.duration = duration
        self.ease = ease
        self._timeline = timeline
        self._start = timeline.now + delay
        self._targets = {}
        self._from = None
        self._remove = False
        self.done = False
        if element.transition_state is not None:
            element.transition_state.interrupt()
        element.transition_state = self
        self._ticker = timeline.ticker(self._frame).restart()

    def style(self, name, value):
        self._targets[name] = float(value)
        return self

    def remove(self):
        self._remove = True
        return self

    def interrupt(self):
        self._ticker.stop()
        if self.element.transition_state is self:
            self.element.transition_state = None

    def _frame(self):
        elapsed = self._timeline.now - self._start
        if elapsed < 0:
            return
        if self._from is None:
            self._from = {name: float(self.element.styles.get(name, 1.0)) for name in self._targets}
        t = 1.0 if self.duration <= 0 else min(1.0, elapsed / self.duration)
        k = self.ease(t)
        for name, end in self._targets.items():
            start = self._from[name]
            self.element.styles[name] = end if t >= 1 else start + (end - start) * k
        if t >= 1:
            self._finish()

    def _finish(self):
        self.done = True
        self.interrupt()
        if self._remove:
            self.element.remove()


class Timeline:
    """Virtual-clock event loop. All callbacks run on the caller's thread."""

    def __init__(self, frame_ms=FRAME_MS):
        self.now = 0.0
        self.frame_ms = frame_ms
        self._scheduler = sched.scheduler(self._clock, self._sleep)
        self._sequence = itertools.count()

    def _clock(self):
        return self.now

    def _sleep(self, ms):
        self.now += ms

    def call_later(self, delay_ms, action, *args):
        return Timer(self, max(0.0, float(delay_ms)), action, args)

    def ticker(self, callback):
        return Ticker(self, callback)

    @property
    def idle(self):
        return self._scheduler.empty()

    def next_due(self):
        queue = self._scheduler.queue
        return queue[0].time if queue else None

    def advance(self, ms):
        """Move the clock forward `ms`, running everything that falls due in order."""
        deadline = self.now + ms
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                break
            self.now = max(self.now, due)
            self._scheduler.run(blocking=False)
        self.now = deadline
