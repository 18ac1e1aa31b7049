"""Per-room countdowns.

A :class:`Countdown` is owned by exactly one room (``Room.countdown``).
Installing a new one cancels the previous one, and every transition away
from a running question cancels it, so a room never has two live
countdowns. Cancellation is a flag the loop checks before each tick.
"""

import itertools


_ids = itertools.count(1)


class Countdown:
    def __init__(self, seconds, on_tick, on_expire):
        self.id = next(_ids)
        self.duration = int(seconds)
        self.remaining = int(seconds)
        self.cancelled = False
        self._on_tick = on_tick
        self._on_expire = on_expire

    @property
    def active(self):
        return not self.cancelled and self.remaining > 0

    def cancel(self):
        self.cancelled = True

    def tick(self):
        """Advance by one second. Returns False once the countdown is done."""
        if not self.active:
            return False
        self.remaining -= 1
        self._on_tick(self, self.remaining)
        if self.remaining <= 0:
            self.cancel()
            self._on_expire(self)
            return False
        return True

    def run(self, sleep):
        while self.active:
            sleep(1)
            if self.cancelled:
                return
            self.tick()

    def __repr__(self):
        return f"<Countdown id={self.id} remaining={self.remaining} cancelled={self.cancelled}>"


class CountdownScheduler:
    """Starts countdown loops as Socket.IO background tasks.

    With ``autostart`` off (testing) countdowns are created and owned as
    usual but nothing ticks them; tests call :meth:`Countdown.tick`.
    """

    def __init__(self, socketio, autostart=True):
        self.socketio = socketio
        self.autostart = autostart

    def start(self, countdown):
        if self.autostart:
            self.socketio.start_background_task(countdown.run, self.socketio.sleep)
        return countdown
