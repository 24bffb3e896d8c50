"""Session configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionConfig:
    """Timing and connection settings shared by the session components.

    All durations are in seconds.

    Attributes:
        scan_duration: Length of one scan cycle
        connect_timeout: Per-attempt connection timeout
        max_attempts: Connection attempts for bleak-retry-connector
        use_services_cache: Reuse cached GATT services on reconnect
        operation_timeout: Bound for discovery, read, write and subscribe calls
        settle_delay: Pause between configuration writes and the first read
    """

    scan_duration: float = 3.0
    connect_timeout: float = 10.0
    max_attempts: int = 4
    use_services_cache: bool = True
    operation_timeout: float = 5.0
    settle_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.scan_duration <= 0:
            raise ValueError(f"scan_duration must be positive, got {self.scan_duration}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.settle_delay < 0:
            raise ValueError(f"settle_delay must not be negative, got {self.settle_delay}")
