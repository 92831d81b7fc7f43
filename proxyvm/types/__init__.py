"""Plain value types shared across proxyvm (addresses, events, call results)."""

from .address import (ADDRESS_LEN, ZERO_ADDRESS, address_to_word, to_address,
                      to_hex, word_to_address)
from .events import LogEvent
from .result import CallResult
from .status import CallStatus

__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "to_address",
    "address_to_word",
    "word_to_address",
    "to_hex",
    "LogEvent",
    "CallResult",
    "CallStatus",
]
