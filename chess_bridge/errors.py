"""Exceptions raised for caller misuse of the board bridge."""


class BridgeError(Exception):
    """Base class for every error raised by chess_bridge."""


class InvalidCoordinateError(BridgeError, ValueError):
    """
    A square key or index lies outside the board.

    :param coordinate: The offending key or index
    :type coordinate: object
    """

    def __init__(self, coordinate: object, message: str = "") -> None:
        self.coordinate = coordinate
        super().__init__(message or f"Invalid coordinate: {coordinate!r}")


class InvalidPositionError(BridgeError, ValueError):
    """A position or game record could not be loaded by the rules engine."""


class NotSupportedError(BridgeError, NotImplementedError):
    """
    The rules engine lacks an optional capability.

    :param capability: Name of the missing capability
    :type capability: str
    """

    def __init__(self, capability: str) -> None:
        self.capability = capability
        super().__init__(f"Rules engine does not support '{capability}'")
