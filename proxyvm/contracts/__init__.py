"""Implementation contracts (delegation targets) shipped with proxyvm."""

from .counter import (V1_LAYOUT, V2_LAYOUT, CounterV1, CounterV2,
                      UnprotectedCounterV1, UUPSCounterV1, UUPSCounterV2)

__all__ = [
    "V1_LAYOUT",
    "V2_LAYOUT",
    "CounterV1",
    "CounterV2",
    "UnprotectedCounterV1",
    "UUPSCounterV1",
    "UUPSCounterV2",
]
