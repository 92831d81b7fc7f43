"""
proxyvm.runtime.proxy — proxy code.

A proxy is an ordinary instance whose code is a `ProxyCode` image. It declares no
fields of its own; its control data sits in the slots named by its `SlotScheme`.

Kinds
-----
transparent  the proxy exposes ``upgrade_to_and_call``, ``change_admin``, ``admin`` and
             ``implementation``; upgrades are authorized against the admin slot.
uups         the proxy exposes only ``implementation``; ``upgrade_to_and_call`` is
             forwarded like any other call and handled by the implementation.

Every method the proxy does not expose itself is forwarded to the current
implementation (`proxyvm.runtime.dispatcher.forward`).
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from ..layout.fields import StorageLayout
from ..state.slots import ERC1967_SCHEME, SlotScheme
from ..types.address import address_to_word, to_address
from .dispatcher import current_implementation, forward
from .initializable import InitState
from .logic import Logic, external
from .upgrade import AdminPolicy, UpgradeAuthority, install_implementation, read_admin

if TYPE_CHECKING:
    from .context import CallContext

TRANSPARENT = "transparent"
UUPS = "uups"
KINDS = (TRANSPARENT, UUPS)

_TRANSPARENT_METHODS = frozenset({"upgrade_to_and_call", "change_admin", "admin", "implementation"})
_UUPS_METHODS = frozenset({"implementation"})


@dataclass(frozen=True)
class ProxyRecord:
    """Control data of a proxy as read from its reserved slots."""

    implementation: bytes
    admin: bytes
    init_state: InitState
    kind: str
    scheme: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "implementation": "0x" + self.implementation.hex(),
            "admin": "0x" + self.admin.hex(),
            "init": self.init_state.to_dict(),
            "kind": self.kind,
            "scheme": self.scheme,
        }


class ProxyCode(Logic):
    LAYOUT = StorageLayout("Proxy", [])
    LOCK_ON_DEPLOY = False

    def __init__(self, kind: str = TRANSPARENT, scheme: SlotScheme = ERC1967_SCHEME) -> None:
        if kind not in KINDS:
            raise ValueError(f"unknown proxy kind {kind!r} (known: {KINDS})")
        self.kind = kind
        self.storage_scheme = scheme
        self._own = _TRANSPARENT_METHODS if kind == TRANSPARENT else _UUPS_METHODS
        self._authority = UpgradeAuthority(AdminPolicy())

    def code_id(self) -> str:
        return f"{super().code_id()}[{self.kind},{self.storage_scheme.name}]"

    def resolve(self, method: str) -> Optional[Callable[..., Any]]:
        if method in self._own:
            return getattr(self, method)
        return functools.partial(_fallback, method)

    # ------------------------------------------------------------------ lifecycle

    def constructor(  # type: ignore[override]
        self,
        ctx: "CallContext",
        implementation: Any,
        admin: Any = None,
        init_data: bytes = b"",
    ) -> Any:
        impl = to_address(implementation)
        install_implementation(ctx, impl)
        if self.kind == TRANSPARENT:
            new_admin = to_address(admin if admin is not None else ctx.caller)
            ctx.store.write(ctx.scheme.admin, address_to_word(new_admin))
            ctx.emit("AdminChanged", previous=b"\x00" * 20, admin=new_admin)
        if init_data:
            return ctx.delegate_raw(impl, bytes(init_data))
        return None

    # ------------------------------------------------------------------ own methods

    @external
    def upgrade_to_and_call(self, ctx: "CallContext", new_implementation: Any, data: bytes = b"") -> Any:
        return self._authority.upgrade_to_and_call(ctx, new_implementation, data)

    @external
    def change_admin(self, ctx: "CallContext", new_admin: Any) -> None:
        self._authority.change_admin(ctx, new_admin)

    @external
    def admin(self, ctx: "CallContext") -> bytes:
        return read_admin(ctx)

    @external
    def implementation(self, ctx: "CallContext") -> bytes:
        return current_implementation(ctx)


def _fallback(method: str, ctx: "CallContext", *args: Any) -> Any:
    return forward(ctx, method, args)


__all__ = ["ProxyCode", "ProxyRecord", "TRANSPARENT", "UUPS", "KINDS"]
