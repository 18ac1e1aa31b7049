class CommandRejected(Exception):
    """A client command that was refused without changing any state.

    Socket handlers turn these into an acknowledgment payload of the form
    ``{'error': message, 'code': code}``.
    """

    code = 'rejected'
    message = 'Command rejected'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_ack(self):
        return {'error': self.message, 'code': self.code}


class RoomNotFound(CommandRejected):
    code = 'room-not-found'
    message = 'Room not found'


class GameInProgress(CommandRejected):
    code = 'game-in-progress'
    message = 'Game in progress'


class NameTaken(CommandRejected):
    code = 'name-taken'
    message = 'Name taken'


class HostConflict(CommandRejected):
    code = 'host-conflict'
    message = 'The host cannot join as a player'


class InvalidName(CommandRejected):
    code = 'invalid-name'
    message = 'Player name is required'


class InvalidContent(CommandRejected):
    code = 'invalid-content'
    message = 'Quiz content is invalid'


class InvalidPayload(CommandRejected):
    code = 'invalid-payload'
    message = 'Malformed request'
