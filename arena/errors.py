"""Error taxonomy shared by the HTTP routes and the Socket.IO handlers."""


class ArenaError(Exception):
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message}


class NotFound(ArenaError):
    status_code = 404


class NotAllowed(ArenaError):
    status_code = 403


class InvalidParameter(ArenaError):
    status_code = 400


class InvalidRoomState(ArenaError):
    status_code = 409


class JudgeUnavailable(ArenaError):
    status_code = 503


class NetworkError(ArenaError):
    status_code = 502
