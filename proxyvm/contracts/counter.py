"""
Counter implementations used as delegation targets.

CounterV1           value, owner, 48-slot gap. Locked at deployment.
CounterV2           appends new_var (gap shrinks to 47); reinitializer sets it.
UnprotectedCounterV1  CounterV1 without the construction-time lock, plus an
                    owner-only ``destroy``. Anyone can initialize a standalone instance
                    and become its owner.
UUPSCounterV1/V2    the same counters carrying their own upgrade entry point,
                    authorized by the recorded owner.
"""

from __future__ import annotations

from typing import Any

from ..errors import Revert, Unauthorized
from ..layout.fields import StorageLayout, address, gap, uint256
from ..runtime.context import CallContext
from ..runtime.initializable import initializer, reinitializer
from ..runtime.logic import Logic, external
from ..runtime.upgrade import UUPSUpgradeable
from ..state.slots import WORD_MAX
from ..types.address import is_zero, to_address

V1_LAYOUT = StorageLayout(
    "CounterV1",
    [uint256("value"), address("owner"), gap(48)],
)

V2_LAYOUT = StorageLayout(
    "CounterV2",
    [uint256("value"), address("owner"), uint256("new_var"), gap(47)],
)


def only_owner(ctx: CallContext) -> None:
    owner = ctx.state.owner
    if is_zero(owner) or ctx.caller != owner:
        raise Unauthorized(caller="0x" + ctx.caller.hex(), expected="0x" + owner.hex())


class CounterV1(Logic):
    LAYOUT = V1_LAYOUT

    @external
    @initializer
    def initialize(self, ctx: CallContext, owner: Any, value: int = 0) -> None:
        ctx.state.owner = to_address(owner)
        ctx.state.value = value

    @external
    def set_value(self, ctx: CallContext, value: int) -> None:
        ctx.state.value = value
        ctx.emit("ValueChanged", value=value)

    @external
    def increment(self, ctx: CallContext) -> int:
        value = ctx.state.value
        if value == WORD_MAX:
            raise Revert("counter overflow", reason="OVERFLOW")
        ctx.state.value = value + 1
        ctx.emit("ValueChanged", value=value + 1)
        return value + 1

    @external
    def get_value(self, ctx: CallContext) -> int:
        return ctx.state.value

    @external
    def owner(self, ctx: CallContext) -> bytes:
        return ctx.state.owner

    @external
    def transfer_ownership(self, ctx: CallContext, new_owner: Any) -> None:
        only_owner(ctx)
        new = to_address(new_owner)
        if is_zero(new):
            raise Revert("new owner is the zero address", reason="ZERO_OWNER")
        ctx.emit("OwnershipTransferred", previous=ctx.state.owner, owner=new)
        ctx.state.owner = new


class CounterV2(CounterV1):
    LAYOUT = V2_LAYOUT

    @external
    @reinitializer
    def reinitialize(self, ctx: CallContext, new_var: int) -> None:
        ctx.state.new_var = new_var

    @external
    def get_new_var(self, ctx: CallContext) -> int:
        return ctx.state.new_var

    @external
    def get_total(self, ctx: CallContext) -> int:
        return ctx.state.value + ctx.state.new_var


class UnprotectedCounterV1(CounterV1):
    LOCK_ON_DEPLOY = False

    @external
    def destroy(self, ctx: CallContext) -> None:
        only_owner(ctx)
        ctx.self_destruct()


class UUPSCounterV1(CounterV1, UUPSUpgradeable):
    def authorize_upgrade(self, ctx: CallContext, new_implementation: bytes) -> None:
        only_owner(ctx)


class UUPSCounterV2(CounterV2, UUPSCounterV1):
    pass


__all__ = [
    "V1_LAYOUT",
    "V2_LAYOUT",
    "CounterV1",
    "CounterV2",
    "UnprotectedCounterV1",
    "UUPSCounterV1",
    "UUPSCounterV2",
    "only_owner",
]
