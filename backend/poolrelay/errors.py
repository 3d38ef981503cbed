"""Relay error taxonomy.

Every error is local to the request that caused it: adapters turn them into
an ``error`` event (push) or an ``{error}`` response (poll) and carry on.
"""


class RelayError(Exception):
    message = 'Relay error'
    status_code = 400

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message}


class RoomNotFound(RelayError):
    message = 'Room not found'


class RoomFull(RelayError):
    message = 'Room is full'


class MalformedMessage(RelayError):
    message = 'Invalid JSON'


class UnknownAction(RelayError):
    message = 'Unknown action'
    status_code = 404
