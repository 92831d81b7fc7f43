"""
proxyvm.runtime.initializable — the initialization guard.

One word per instance, kept in the scheme's ``initialized`` control slot of the store
the frame executes against:

    0            Uninitialized
    n (1..L-1)   Initialized(n)
    L = 2**64-1  Locked

Transitions:

    Uninitialized --initialize()-------> Initialized(1)
    Initialized(n) --reinitialize(n+1)--> Initialized(n+1)
    Uninitialized --lock()-------------> Locked          (construction time)

Locked is terminal. Every rejected transition raises before anything is written, and
the frame's checkpoint reverts whatever the initializer body did if it fails later.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from ..errors import (AlreadyInitialized, InitializerDisabled,
                      InvalidReinitializationEpoch)
from ..logging import get_logger

if TYPE_CHECKING:
    from .context import CallContext

log = get_logger("proxyvm.runtime.initializable")

UNINITIALIZED = 0
LOCKED = (1 << 64) - 1

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class InitState:
    epoch: int

    @classmethod
    def from_word(cls, word: int) -> "InitState":
        return cls(int(word))

    @property
    def is_uninitialized(self) -> bool:
        return self.epoch == UNINITIALIZED

    @property
    def is_locked(self) -> bool:
        return self.epoch == LOCKED

    @property
    def is_initialized(self) -> bool:
        return not (self.is_uninitialized or self.is_locked)

    @property
    def label(self) -> str:
        if self.is_uninitialized:
            return "uninitialized"
        if self.is_locked:
            return "locked"
        return f"initialized({self.epoch})"

    def to_dict(self) -> dict:
        return {"state": self.label.split("(")[0], "epoch": None if self.is_locked else self.epoch}


def read_state(ctx: "CallContext") -> InitState:
    return InitState.from_word(ctx.store.read(ctx.scheme.initialized))


def _set_epoch(ctx: "CallContext", epoch: int) -> None:
    ctx.store.write(ctx.scheme.initialized, epoch)


def _addr(ctx: "CallContext") -> str:
    return "0x" + ctx.address.hex()


def begin_initialize(ctx: "CallContext") -> None:
    state = read_state(ctx)
    if state.is_locked:
        raise InitializerDisabled(address=_addr(ctx))
    if not state.is_uninitialized:
        raise AlreadyInitialized(epoch=state.epoch)
    _set_epoch(ctx, 1)


def begin_reinitialize(ctx: "CallContext", epoch: Any) -> None:
    if isinstance(epoch, bool) or not isinstance(epoch, int):
        raise InvalidReinitializationEpoch("epoch must be an integer", supplied=None)
    state = read_state(ctx)
    if state.is_locked:
        raise InitializerDisabled(address=_addr(ctx))
    if state.is_uninitialized or epoch != state.epoch + 1 or epoch >= LOCKED:
        raise InvalidReinitializationEpoch(current=state.epoch, supplied=epoch)
    _set_epoch(ctx, epoch)


def disable_initializers(ctx: "CallContext") -> None:
    """Move an uninitialized instance to Locked. Already-locked instances stay locked."""
    state = read_state(ctx)
    if state.is_locked:
        return
    if not state.is_uninitialized:
        raise AlreadyInitialized("cannot lock an initialized instance", epoch=state.epoch)
    _set_epoch(ctx, LOCKED)
    log.info("initializers locked", extra={"instance": _addr(ctx)})


def _emit(ctx: "CallContext", version: int) -> None:
    ctx.emit("Initialized", version=version)
    log.info("initialized", extra={"instance": _addr(ctx), "version": version})


def initializer(fn: F) -> F:
    """Run `fn` as the one-shot Uninitialized -> Initialized(1) transition."""

    @functools.wraps(fn)
    def wrapper(self: Any, ctx: "CallContext", *args: Any, **kwargs: Any) -> Any:
        begin_initialize(ctx)
        out = fn(self, ctx, *args, **kwargs)
        _emit(ctx, 1)
        return out

    return wrapper  # type: ignore[return-value]


def reinitializer(fn: F) -> F:
    """
    Run `fn` as Initialized(n) -> Initialized(epoch), where the caller passes `epoch`
    as the first argument and it must equal n+1. The body does not receive it.
    """

    @functools.wraps(fn)
    def wrapper(self: Any, ctx: "CallContext", epoch: int, *args: Any, **kwargs: Any) -> Any:
        begin_reinitialize(ctx, epoch)
        out = fn(self, ctx, *args, **kwargs)
        _emit(ctx, epoch)
        return out

    return wrapper  # type: ignore[return-value]


__all__ = [
    "UNINITIALIZED",
    "LOCKED",
    "InitState",
    "read_state",
    "begin_initialize",
    "begin_reinitialize",
    "disable_initializers",
    "initializer",
    "reinitializer",
]
