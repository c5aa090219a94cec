"""
Dispatch errors.

Every error raised by the order core carries the HTTP status the API layer
answers with, so route handlers only have to translate, never decide.
"""


class DispatchError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    status_code = 400


class NotAuthenticatedError(DispatchError):
    status_code = 401


class PermissionDeniedError(DispatchError):
    status_code = 403


class AgentNotAuthorizedError(DispatchError):
    status_code = 403


class OrderNotFoundError(DispatchError):
    status_code = 404

    def __init__(self, order_id: str):
        super().__init__("Order not found")
        self.order_id = order_id


class AgentNotFoundError(DispatchError):
    status_code = 404

    def __init__(self, agent_id: str):
        super().__init__("Delivery agent not found")
        self.agent_id = agent_id


class AgentUnavailableError(DispatchError):
    status_code = 400


class InvalidTransitionError(DispatchError):
    status_code = 400


class OrderTerminalError(DispatchError):
    status_code = 400


class ConcurrentModificationError(DispatchError):
    status_code = 409


class OrderNumberCollisionError(DispatchError):
    status_code = 409
