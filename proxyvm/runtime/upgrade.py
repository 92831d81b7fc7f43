"""
proxyvm.runtime.upgrade — the upgrade authority.

`UpgradeAuthority(policy).upgrade_to_and_call(ctx, new_implementation, data)`:

  1. policy.authorize(ctx, new_implementation)          -> Unauthorized
  2. new_implementation must carry code                 -> InvalidImplementation
  3. write the implementation slot, emit ``Upgraded``
  4. if `data` is non-empty, delegate it to the new implementation

All four run inside the caller's frame, so a failure at any step (including inside
the post-upgrade call) reverts the pointer write with everything else.

Policies
--------
AdminPolicy            caller must equal the admin recorded in the proxy's admin slot
                       (transparent proxies; the check lives in the proxy code).
SelfAuthorizingPolicy  the running implementation's `authorize_upgrade` decides
                       (UUPS; the upgrade entry point lives in the implementation).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from ..errors import InvalidImplementation, Unauthorized
from ..logging import get_logger
from ..types.address import (address_to_word, is_zero, to_address, to_hex,
                             word_to_address)
from .logic import Logic, external

if TYPE_CHECKING:
    from .context import CallContext

log = get_logger("proxyvm.runtime.upgrade")


def read_admin(ctx: "CallContext") -> bytes:
    return word_to_address(ctx.store.read(ctx.scheme.admin))


# --------------------------------------------------------------------------- #
# Policies
# --------------------------------------------------------------------------- #


class UpgradePolicy(Protocol):
    name: str

    def authorize(self, ctx: "CallContext", new_implementation: bytes) -> None: ...

    def check_target(self, ctx: "CallContext", code: Logic) -> None: ...


class AdminPolicy:
    name = "admin"

    def authorize(self, ctx: "CallContext", new_implementation: bytes) -> None:
        admin = read_admin(ctx)
        if is_zero(admin) or ctx.caller != admin:
            raise Unauthorized(caller=to_hex(ctx.caller), expected=to_hex(admin))

    def check_target(self, ctx: "CallContext", code: Logic) -> None:
        return None


class SelfAuthorizingPolicy:
    name = "self"

    def authorize(self, ctx: "CallContext", new_implementation: bytes) -> None:
        ctx.code.authorize_upgrade(ctx, new_implementation)

    def check_target(self, ctx: "CallContext", code: Logic) -> None:
        # the next implementation has to carry the upgrade entry point too
        if not getattr(code, "PROXIABLE", False):
            raise InvalidImplementation(
                "implementation cannot upgrade itself", address=to_hex(ctx.code_address)
            )


# --------------------------------------------------------------------------- #
# Authority
# --------------------------------------------------------------------------- #


def install_implementation(ctx: "CallContext", new_implementation: bytes) -> Logic:
    """Validate and write the implementation pointer. Returns the new code image."""
    code = ctx.host.code_at(new_implementation)
    if code is None:
        raise InvalidImplementation(address=to_hex(new_implementation))
    ctx.store.write(ctx.scheme.implementation, address_to_word(new_implementation))
    ctx.emit("Upgraded", implementation=new_implementation)
    return code


class UpgradeAuthority:
    def __init__(self, policy: UpgradePolicy) -> None:
        self.policy = policy

    def upgrade_to_and_call(self, ctx: "CallContext", new_implementation: Any, data: bytes = b"") -> Any:
        new_impl = to_address(new_implementation)
        self.policy.authorize(ctx, new_impl)
        code = ctx.host.code_at(new_impl)
        if code is None:
            raise InvalidImplementation(address=to_hex(new_impl))
        self.policy.check_target(ctx, code)
        previous = word_to_address(ctx.store.read(ctx.scheme.implementation))
        install_implementation(ctx, new_impl)
        result = ctx.delegate_raw(new_impl, bytes(data)) if data else None
        log.info(
            "implementation upgraded",
            extra={
                "proxy": ctx.address,
                "previous": previous,
                "implementation": new_impl,
                "policy": self.policy.name,
                "post_call": bool(data),
            },
        )
        return result

    def change_admin(self, ctx: "CallContext", new_admin: Any) -> None:
        admin = to_address(new_admin)
        self.policy.authorize(ctx, admin)
        if is_zero(admin):
            raise Unauthorized("new admin is the zero address", caller=to_hex(ctx.caller))
        previous = read_admin(ctx)
        ctx.store.write(ctx.scheme.admin, address_to_word(admin))
        ctx.emit("AdminChanged", previous=previous, admin=admin)
        log.info("admin changed", extra={"proxy": ctx.address, "previous": previous, "admin": admin})


# --------------------------------------------------------------------------- #
# UUPS implementations
# --------------------------------------------------------------------------- #


class UUPSUpgradeable(Logic):
    """
    Mixin for implementations that carry their own upgrade entry point.

    Subclasses must override `authorize_upgrade` (the default refuses everyone).
    """

    PROXIABLE: ClassVar[bool] = True

    @external
    def upgrade_to_and_call(self, ctx: "CallContext", new_implementation: Any, data: bytes = b"") -> Any:
        if not ctx.is_delegated:
            raise Unauthorized(
                "upgrade must be called through a proxy", caller=to_hex(ctx.caller)
            )
        return UpgradeAuthority(SelfAuthorizingPolicy()).upgrade_to_and_call(
            ctx, new_implementation, data
        )

    @external
    def proxiable_slot(self, ctx: "CallContext") -> int:
        return ctx.scheme.implementation


__all__ = [
    "UpgradePolicy",
    "AdminPolicy",
    "SelfAuthorizingPolicy",
    "UpgradeAuthority",
    "UUPSUpgradeable",
    "install_implementation",
    "read_admin",
]
