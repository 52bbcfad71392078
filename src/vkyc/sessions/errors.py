"""Errors raised by the session lifecycle core."""


class VKYCError(Exception):
    """Base class for all session core errors."""


class NotFoundError(VKYCError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class InvalidInputError(VKYCError):
    pass


class InvalidTransitionError(VKYCError):
    def __init__(self, current, target):
        super().__init__(f"Cannot move session from {current.value} to {target.value}")
        self.current = current
        self.target = target


class InvalidStateError(VKYCError):
    pass


class ConflictError(VKYCError):
    pass


class UnavailableError(VKYCError):
    """The backing store could not be reached or failed mid-operation."""
