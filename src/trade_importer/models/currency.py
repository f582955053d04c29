"""Currency model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Currency:
    """A canonical currency identifier.

    Attributes:
        code: Canonical upper-case code (e.g., "BTC", "USD").
        is_fiat: True for government-issued currencies.
    """

    code: str
    is_fiat: bool = False

    @property
    def is_crypto(self) -> bool:
        return not self.is_fiat

    def __str__(self) -> str:
        return self.code
