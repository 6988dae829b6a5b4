"""Session token domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionToken:
    """Authenticated handle to the ERP.

    Attributes:
        uid: User id returned by the ERP ``authenticate`` call
        issued_at: Clock reading (seconds) when the token was obtained
        ttl: Seconds after which the token is renewed proactively
    """

    uid: int
    issued_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.issued_at

    def is_valid(self, now: float) -> bool:
        return self.age(now) < self.ttl
