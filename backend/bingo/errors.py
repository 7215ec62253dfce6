"""Typed error kinds raised by the game services.

The request layer maps each kind to a fixed HTTP status and sends the kind
name back to the caller; nothing else about the failure leaves the server.
"""


class BingoError(Exception):
    status_code = 500
    kind = 'ServerError'

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'error': self.kind, 'message': self.message}


class InvalidInput(BingoError):
    status_code = 400
    kind = 'InvalidInput'


class Forbidden(BingoError):
    status_code = 403
    kind = 'Forbidden'


class NotFound(BingoError):
    status_code = 404
    kind = 'NotFound'


class Conflict(BingoError):
    status_code = 409
    kind = 'Conflict'
