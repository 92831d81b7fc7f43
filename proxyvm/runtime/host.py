"""
proxyvm.runtime.host — the environment instances live in.

`Host` owns the committed state (accounts + storage), the write journal and the code
registry, and sequences every external operation: one operation runs to completion,
commit or full rollback, before the next starts (a re-entrant lock serializes callers
on different threads).

Frames
------
Each external call and each nested frame (delegation, inner call, constructor) runs
inside its own journal checkpoint. A frame that raises reverts its checkpoint, which
discards its storage writes and its events, and the exception keeps propagating; the
caller sees the original failure. Nothing is retried or swallowed inside the core.

Public surface
--------------
deploy(code, *args, sender)                          -> address
deploy_proxy(implementation, init_data, *, sender, admin, kind, scheme) -> address
call(address, method, *args, sender)                 -> return value
call_raw(address, calldata, *, sender)               -> return value
try_call(address, method, *args, sender)             -> CallResult
upgrade(proxy, new_implementation, data, *, sender)  -> post-call return value
introspect(proxy)                                    -> ProxyRecord
teardown(address)                                    -> bool
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import ProxyConfig, get_config
from ..errors import (CallDepthExceeded, InvalidImplementation, ProxyError,
                      error_to_result_fields)
from ..logging import get_logger, trace_scope
from ..state.accounts import Account, CodeRegistry, derive_address
from ..state.journal import Journal
from ..state.slots import ERC1967_SCHEME, SlotScheme
from ..state.storage import PersistentStore, StorageView
from ..types.address import AddressLike, to_address, to_hex, word_to_address
from ..types.events import LogEvent
from ..types.result import CallResult
from ..types.status import CallStatus
from .abi import decode_call
from .context import CallContext
from .dispatcher import execute
from .initializable import InitState
from .logic import Logic
from .proxy import TRANSPARENT, ProxyCode, ProxyRecord

log = get_logger("proxyvm.runtime.host")


class Host:
    def __init__(self, config: Optional[ProxyConfig] = None) -> None:
        self.config = config or get_config()
        self._accounts: Dict[bytes, Account] = {}
        self._storage = StorageView()
        self._journal = Journal(self._accounts, self._storage)
        self._codes = CodeRegistry()
        self._lock = threading.RLock()
        self.last_events: Tuple[LogEvent, ...] = ()

    # ------------------------------------------------------------------ reads

    def code_at(self, address: AddressLike) -> Optional[Logic]:
        acc = self._journal.get_account(to_address(address))
        if acc is None or not acc.has_code:
            return None
        return self._codes.resolve(acc.code_hash)

    def has_code(self, address: AddressLike) -> bool:
        return self.code_at(address) is not None

    def exists(self, address: AddressLike) -> bool:
        return self._journal.exists(to_address(address))

    def nonce(self, address: AddressLike) -> int:
        acc = self._journal.get_account(to_address(address))
        return 0 if acc is None else acc.nonce

    def scheme_of(self, address: AddressLike) -> SlotScheme:
        code = self.code_at(address)
        return code.storage_scheme if code is not None else ERC1967_SCHEME

    def store(self, address: AddressLike) -> PersistentStore:
        return PersistentStore(self._journal, to_address(address))

    def storage_at(self, address: AddressLike, slot: int) -> int:
        """Raw word at `slot` of `address`'s own store."""
        with self._lock:
            return self.store(address).read(slot)

    def storage_dump(self, address: AddressLike) -> Dict[int, int]:
        with self._lock:
            return dict(self._journal.storage_items(to_address(address)))

    def init_state(self, address: AddressLike) -> InitState:
        """Initialization state kept in `address`'s own store."""
        addr = to_address(address)
        with self._lock:
            return InitState.from_word(self.store(addr).read(self.scheme_of(addr).initialized))

    def introspect(self, proxy: AddressLike) -> ProxyRecord:
        """Read a proxy's control slots directly. Never dispatches and never guarded."""
        addr = to_address(proxy)
        with self._lock:
            code = self.code_at(addr)
            if not isinstance(code, ProxyCode):
                raise ValueError(f"{to_hex(addr)} is not a proxy")
            scheme = code.storage_scheme
            store = self.store(addr)
            return ProxyRecord(
                implementation=word_to_address(store.read(scheme.implementation)),
                admin=word_to_address(store.read(scheme.admin)),
                init_state=InitState.from_word(store.read(scheme.initialized)),
                kind=code.kind,
                scheme=scheme.name,
            )

    # ------------------------------------------------------------------ operations

    def deploy(self, code: Logic, *args: Any, sender: AddressLike) -> bytes:
        """Create an instance carrying `code` and run its constructor in its own store."""
        if not isinstance(code, Logic):
            raise TypeError("code must be a Logic image")
        sender_b = to_address(sender)

        def op(sink: List[LogEvent]) -> bytes:
            acct = self._journal.get_account_for_write(sender_b)
            if acct is None:
                acct = self._journal.create_account(sender_b)
            addr = derive_address(sender_b, acct.nonce)
            acct.increment_nonce()
            self._journal.create_account(addr, code_hash=self._codes.register(code))
            self._frame(
                store=self.store(addr),
                caller=sender_b,
                code=code,
                code_address=addr,
                depth=1,
                sink=sink,
                run=lambda ctx: code.constructor(ctx, *args),
            )
            log.info(
                "instance deployed",
                extra={"instance": addr, "code": type(code).__name__, "deployer": sender_b},
            )
            return addr

        return self._top_level("deploy", sender_b, op)

    def deploy_proxy(
        self,
        implementation: AddressLike,
        init_data: bytes = b"",
        *,
        sender: AddressLike,
        admin: Optional[AddressLike] = None,
        kind: str = TRANSPARENT,
        scheme: SlotScheme = ERC1967_SCHEME,
    ) -> bytes:
        """
        Deploy a proxy pointing at `implementation`. Non-empty `init_data` is delegated to
        the implementation as part of construction; if it fails, no proxy is created.
        """
        if kind != TRANSPARENT and admin is not None:
            raise ValueError(f"{kind} proxies keep no admin")
        impl = to_address(implementation)
        return self.deploy(
            ProxyCode(kind, scheme),
            impl,
            None if admin is None else to_address(admin),
            bytes(init_data),
            sender=sender,
        )

    def call(self, address: AddressLike, method: str, *args: Any, sender: AddressLike) -> Any:
        target = to_address(address)
        sender_b = to_address(sender)

        def op(sink: List[LogEvent]) -> Any:
            code = self.code_at(target)
            if code is None:
                raise InvalidImplementation("no code at call target", address=to_hex(target))
            return self._frame(
                store=self.store(target),
                caller=sender_b,
                code=code,
                code_address=target,
                depth=1,
                sink=sink,
                run=lambda ctx: execute(code, ctx, method, args),
            )

        return self._top_level(method, sender_b, op, target=target)

    def call_raw(self, address: AddressLike, calldata: bytes, *, sender: AddressLike) -> Any:
        method, args = decode_call(calldata)
        return self.call(address, method, *args, sender=sender)

    def try_call(self, address: AddressLike, method: str, *args: Any, sender: AddressLike) -> CallResult:
        """Like `call`, but failures come back as a CallResult instead of raising."""
        try:
            value = self.call(address, method, *args, sender=sender)
        except ProxyError as e:
            fields = error_to_result_fields(e)
            return CallResult(status=CallStatus.from_str(fields["status"]), error=fields["error"])
        return CallResult(status=CallStatus.SUCCESS, return_value=value, events=self.last_events)

    def upgrade(
        self,
        proxy: AddressLike,
        new_implementation: AddressLike,
        data: bytes = b"",
        *,
        sender: AddressLike,
    ) -> Any:
        """Route ``upgrade_to_and_call`` through the proxy (own method or forwarded)."""
        return self.call(
            proxy, "upgrade_to_and_call", to_address(new_implementation), bytes(data), sender=sender
        )

    def teardown(self, address: AddressLike) -> bool:
        """Remove an instance and its store. Returns False if nothing was there."""
        addr = to_address(address)

        def op(sink: List[LogEvent]) -> bool:
            removed = self._journal.destroy_account(addr)
            log.info("instance torn down", extra={"instance": addr, "existed": removed})
            return removed

        return self._top_level("teardown", addr, op)

    # ------------------------------------------------------------------ frames

    def _top_level(
        self,
        op_name: str,
        sender: bytes,
        op: Callable[[List[LogEvent]], Any],
        *,
        target: Optional[bytes] = None,
    ) -> Any:
        with self._lock, trace_scope(sender=to_hex(sender), target=None if target is None else to_hex(target)):
            sink: List[LogEvent] = []
            mark = self._journal.checkpoint()
            try:
                out = op(sink)
            except ProxyError as e:
                self._journal.revert_to(mark - 1)
                self.last_events = ()
                log.warning(
                    "call reverted",
                    extra={"op": op_name, "reason": e.code, "detail": e.message},
                )
                raise
            except Exception:
                self._journal.revert_to(mark - 1)
                self.last_events = ()
                raise
            self._journal.flush()
            self.last_events = tuple(sink)
            return out

    def _frame(
        self,
        *,
        store: PersistentStore,
        caller: bytes,
        code: Logic,
        code_address: bytes,
        depth: int,
        sink: List[LogEvent],
        run: Callable[[CallContext], Any],
    ) -> Any:
        if depth > self.config.max_call_depth:
            raise CallDepthExceeded(limit=self.config.max_call_depth)
        ctx = CallContext(
            self,
            store=store,
            caller=caller,
            code=code,
            code_address=code_address,
            scheme=self.scheme_of(store.owner),
            depth=depth,
        )
        mark = self._journal.checkpoint()
        try:
            out = run(ctx)
        except Exception:
            self._journal.revert_to(mark - 1)
            raise
        self._journal.commit_to(mark - 1)
        sink.extend(ctx.events)
        return out

    def _delegate(self, ctx: CallContext, implementation: Any, method: str, args: Sequence[Any]) -> Any:
        impl = to_address(implementation)
        code = self.code_at(impl)
        if code is None:
            raise InvalidImplementation(address=to_hex(impl))
        return self._frame(
            store=ctx.store,
            caller=ctx.caller,
            code=code,
            code_address=impl,
            depth=ctx.depth + 1,
            sink=ctx.events,
            run=lambda c: execute(code, c, method, args),
        )

    def _nested_call(self, ctx: CallContext, address: Any, method: str, args: Sequence[Any]) -> Any:
        target = to_address(address)
        code = self.code_at(target)
        if code is None:
            raise InvalidImplementation("no code at call target", address=to_hex(target))
        return self._frame(
            store=self.store(target),
            caller=ctx.address,
            code=code,
            code_address=target,
            depth=ctx.depth + 1,
            sink=ctx.events,
            run=lambda c: execute(code, c, method, args),
        )

    def _destroy(self, ctx: CallContext, address: bytes) -> None:
        self._journal.destroy_account(address)
        ctx.emit("SelfDestructed", code=ctx.code_address)
        log.info("instance self-destructed", extra={"instance": address, "code": ctx.code_address})


__all__ = ["Host"]
