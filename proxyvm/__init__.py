"""
proxyvm — a model of upgradeable-proxy storage isolation and lifecycle control.

Delegated execution, reserved control slots, the initializer state machine and the
upgrade authority live in subpackages (`proxyvm.state`, `proxyvm.runtime`,
`proxyvm.layout`). Only lightweight metadata is exposed at import time.
"""

from .version import __version__

__all__ = ["__version__"]
