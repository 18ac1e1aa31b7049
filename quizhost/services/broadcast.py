class BroadcastGateway:
    """Room-, host- and player-scoped emits over Socket.IO.

    A recipient without a live connection is skipped; missed events are
    superseded by the snapshot a client receives on ``check_session``.
    """

    def __init__(self, socketio, namespace='/'):
        self.socketio = socketio
        self.namespace = namespace

    def emit_to_sid(self, sid, event, payload=None):
        if not sid:
            return
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def emit_to_host(self, room, event, payload=None):
        self.emit_to_sid(room.host_sid, event, payload)

    def emit_to_player(self, player, event, payload=None):
        self.emit_to_sid(player.sid, event, payload)

    def emit_to_room(self, room, event, payload=None):
        self.socketio.emit(event, payload, to=room.code, namespace=self.namespace)

    def close_room(self, room):
        """Drop every connection from the room's broadcast group."""
        self.socketio.close_room(room.code, namespace=self.namespace)
