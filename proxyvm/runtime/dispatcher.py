"""
proxyvm.runtime.dispatcher — run code against a store.

`execute(code, ctx, method, args)` is the single execution primitive: *which code runs*
is `code`, *whose storage is touched* is `ctx.store`. Direct calls pass the target's
own code and store; delegated calls pass the implementation's code with the caller's
store handle. Nothing here copies a store.

`forward(ctx, method, args)` is the proxy fallback: read the implementation pointer
from the proxy's own store and delegate the call to it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from ..errors import BadCalldata, UnknownMethod
from ..logging import get_logger
from ..types.address import word_to_address

if TYPE_CHECKING:
    from .context import CallContext
    from .logic import Logic

log = get_logger("proxyvm.runtime.dispatcher")


def execute(code: "Logic", ctx: "CallContext", method: str, args: Sequence[Any]) -> Any:
    fn = code.resolve(method)
    if fn is None:
        raise UnknownMethod(method=method, address="0x" + ctx.code_address.hex())
    try:
        return fn(ctx, *args)
    except (TypeError, ValueError) as e:
        # wrong arity or an argument the method cannot take
        raise BadCalldata(f"{method}: {e}", data={"method": method}) from e


def current_implementation(ctx: "CallContext") -> bytes:
    """Implementation pointer as stored in the frame's store (low 160 bits of the word)."""
    return word_to_address(ctx.store.read(ctx.scheme.implementation))


def forward(ctx: "CallContext", method: str, args: Sequence[Any]) -> Any:
    impl = current_implementation(ctx)
    log.debug(
        "forwarding",
        extra={"proxy": ctx.address, "implementation": impl, "method": method, "depth": ctx.depth},
    )
    return ctx.delegate(impl, method, *args)


__all__ = ["execute", "current_implementation", "forward"]
