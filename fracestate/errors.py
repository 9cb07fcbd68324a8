"""Exceptions raised by the service layer.

Routes translate these into ``{'error': message}`` JSON responses; see
``routes.register_blueprints``.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFound(ServiceError):
    status_code = 404


class InsufficientFunds(ServiceError):
    pass


class InvalidPurchase(ServiceError):
    pass
