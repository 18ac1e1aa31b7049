import logging
import threading
import time

from quizhost.models import Room, generate_host_token, generate_room_code


class RoomRegistry:
    """In-memory table of live rooms keyed by room code.

    Each Flask app owns its own registry, so tests can run several side by
    side. ``gateway`` is used to tell members a room is gone.
    """

    def __init__(self, gateway=None, inactivity_timeout=2 * 60 * 60, clock=time.time,
                 code_factory=generate_room_code, token_factory=generate_host_token, logger=None):
        self.gateway = gateway
        self.inactivity_timeout = inactivity_timeout
        self.clock = clock
        self.code_factory = code_factory
        self.token_factory = token_factory
        self.logger = logger or logging.getLogger(__name__)
        self._rooms = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._rooms)

    def __contains__(self, code):
        return self.get_room(code) is not None

    def create_room(self, content, host_sid, mode='quiz', timer_duration=0):
        with self._lock:
            code = self.code_factory()
            while code in self._rooms:
                self.logger.info(f"[room-code-collision] code={code}")
                code = self.code_factory()
            room = Room(
                code=code,
                host_token=self.token_factory(),
                host_sid=host_sid,
                content=content,
                mode=mode,
                timer_duration=timer_duration,
                now=self.clock(),
            )
            self._rooms[code] = room
        self.logger.info(f"[room-create] code={code} mode={mode} questions={room.total_questions}")
        return room

    def get_room(self, code):
        if not code:
            return None
        return self._rooms.get(str(code).strip().upper())

    def destroy_room(self, code, reason='closed'):
        """Remove a room and send the terminal ``room_closed`` to its members."""
        with self._lock:
            room = self._rooms.pop(str(code).strip().upper(), None)
        if room is None:
            return None
        with room.lock:
            room.cancel_countdown()
        if self.gateway is not None:
            self.gateway.emit_to_room(room, 'room_closed', {'roomCode': room.code, 'reason': reason})
            self.gateway.close_room(room)
        self.logger.info(f"[room-destroy] code={room.code} reason={reason}")
        return room

    def sweep(self, now=None):
        """Evict rooms idle for longer than the inactivity timeout."""
        now = self.clock() if now is None else now
        with self._lock:
            checked = len(self._rooms)
            stale = [code for code, room in self._rooms.items()
                     if now - room.last_activity > self.inactivity_timeout]
        for code in stale:
            self.destroy_room(code, reason='inactive')
        if checked:
            self.logger.info(f"[sweep] checked={checked} evicted={len(stale)} active={len(self._rooms)}")
        return stale

    def run_sweeper(self, socketio, interval):
        """Background loop for ``socketio.start_background_task``."""
        while True:
            socketio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                self.logger.exception("[sweep] failed")
