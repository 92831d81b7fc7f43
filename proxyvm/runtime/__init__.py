"""
proxyvm.runtime — delegated execution, the initialization guard and the upgrade
authority, driven by `Host`.
"""

from .abi import decode_call, encode_call
from .context import CallContext, FieldView
from .dispatcher import current_implementation, execute, forward
from .host import Host
from .initializable import (LOCKED, UNINITIALIZED, InitState,
                            disable_initializers, initializer, reinitializer)
from .logic import Logic, external
from .proxy import KINDS, TRANSPARENT, UUPS, ProxyCode, ProxyRecord
from .upgrade import (AdminPolicy, SelfAuthorizingPolicy, UpgradeAuthority,
                      UUPSUpgradeable)

__all__ = [
    "Host",
    "Logic",
    "external",
    "CallContext",
    "FieldView",
    "execute",
    "forward",
    "current_implementation",
    "encode_call",
    "decode_call",
    "InitState",
    "UNINITIALIZED",
    "LOCKED",
    "initializer",
    "reinitializer",
    "disable_initializers",
    "ProxyCode",
    "ProxyRecord",
    "TRANSPARENT",
    "UUPS",
    "KINDS",
    "UpgradeAuthority",
    "AdminPolicy",
    "SelfAuthorizingPolicy",
    "UUPSUpgradeable",
]
