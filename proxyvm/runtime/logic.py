"""
proxyvm.runtime.logic — executable code images.

A `Logic` subclass is the code of a contract: a declared `LAYOUT` and a set of methods
marked with `@external`. Instances are stateless images shared by every address that
carries them; all state lives in the store of whichever instance a frame executes
against (`ctx.store`), so the same image serves as standalone code and as a
delegation target.

    class Counter(Logic):
        LAYOUT = StorageLayout("Counter", [uint256("value")])

        @external
        def get_value(self, ctx):
            return ctx.state.value

Construction: `constructor(ctx, *args)` runs once in the new instance's own store.
With `LOCK_ON_DEPLOY` (the default) it moves the instance's initialization state to
Locked, which is what keeps a delegation target from being initialized directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, ClassVar, FrozenSet, Optional, TypeVar

from ..errors import Unauthorized
from ..layout.fields import StorageLayout
from ..state.slots import ERC1967_SCHEME, SlotScheme
from .initializable import disable_initializers

if TYPE_CHECKING:
    from .context import CallContext

F = TypeVar("F", bound=Callable[..., Any])

_EXTERNAL_ATTR = "__proxyvm_external__"


def external(fn: F) -> F:
    """Expose a method to callers under its own name."""
    setattr(fn, _EXTERNAL_ATTR, True)
    return fn


def is_external(fn: Any) -> bool:
    return bool(getattr(fn, _EXTERNAL_ATTR, False))


class Logic:
    LAYOUT: ClassVar[StorageLayout] = StorageLayout("Logic", [])
    LOCK_ON_DEPLOY: ClassVar[bool] = True
    # Where control data lives in stores owned by instances of this code.
    storage_scheme: SlotScheme = ERC1967_SCHEME

    _externals: ClassVar[FrozenSet[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names = set()
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if is_external(attr):
                    names.add(name)
                elif name in names:
                    # overridden without @external: no longer callable
                    names.discard(name)
        cls._externals = frozenset(names)

    # ------------------------------------------------------------------ identity

    def code_id(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def methods(cls) -> FrozenSet[str]:
        return cls._externals

    def resolve(self, method: str) -> Optional[Callable[..., Any]]:
        """Bound method for `method` if this code exposes it, else None."""
        if method not in self._externals:
            return None
        return getattr(self, method)

    # ------------------------------------------------------------------ lifecycle

    def constructor(self, ctx: "CallContext", *args: Any) -> None:
        if args:
            raise TypeError(f"{type(self).__name__} constructor takes no arguments")
        if self.LOCK_ON_DEPLOY:
            disable_initializers(ctx)

    def authorize_upgrade(self, ctx: "CallContext", new_implementation: bytes) -> None:
        """Self-authorizing upgrade hook. Code that does not override it refuses."""
        raise Unauthorized(
            f"{type(self).__name__} does not authorize upgrades",
            caller="0x" + ctx.caller.hex(),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code>"


__all__ = ["Logic", "external", "is_external"]
