"""Custom exceptions for the TAGO.io telemetry agent."""

from typing import Optional


class TagoAgentException(Exception):
    """Base exception for the telemetry agent."""

    pass


class ConfigException(TagoAgentException):
    """Exception for invalid or unreadable configuration."""

    pass


class LinkException(TagoAgentException):
    """Exception for network link errors."""

    pass


class AssociationTimeout(LinkException):
    """Link association did not complete within the attempt ceiling.

    Fatal: the run loop tears down and rebuilds every component.
    """

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Link not associated after {attempts} attempts")
        self.attempts = attempts


class SessionException(TagoAgentException):
    """Exception for MQTT session errors."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class HandshakeRejected(SessionException):
    """Broker refused the CONNECT handshake."""

    pass


class TransportUnavailable(SessionException):
    """Broker could not be reached or the transport dropped."""

    pass


class NotConnected(SessionException):
    """Publish attempted without a connected session."""

    pass


class EncodingException(TagoAgentException):
    """Exception for payload encoding errors."""

    pass


class BufferTooSmall(EncodingException):
    """Serialized payload exceeds the fixed capacity."""

    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(f"Payload of {size} bytes exceeds capacity of {capacity} bytes")
        self.size = size
        self.capacity = capacity
