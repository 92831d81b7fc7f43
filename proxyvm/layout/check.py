"""
proxyvm.layout.check — static storage-layout checks.

These run at design/deploy time against declared layouts; the runtime never calls
them, since a collision is invisible while executing.

* `check_upgrade(old, new)`  every non-gap field of `old` keeps its slot, name and type
  in `new`; new fields are appended or consume part of a gap; each gap of `old` is still
  closed off at the same slot by a (smaller) gap in `new`.
* `check_disjoint(layout, scheme)`  the scheme's control slots lie outside the layout
  and outside the region sequential allocation can reach.
* `check_lineage(layouts)`  pairwise `check_upgrade` over consecutive versions.
* `audit(...)`  non-raising variant of all of the above, collecting every finding.

Gap mismatches are a `LayoutError` in strict mode and a logged warning otherwise
(``PROXYVM_STRICT_LAYOUT``). Field reorders, removals, renames and type changes are
always a `StorageCollision`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import get_config
from ..errors import LayoutError, ProxyError, StorageCollision
from ..logging import get_logger
from ..state.slots import SlotScheme, in_sequential_region
from .fields import StorageLayout

log = get_logger("proxyvm.layout")


def _strict(strict: Optional[bool]) -> bool:
    return get_config().strict_layout if strict is None else bool(strict)


def check_upgrade(old: StorageLayout, new: StorageLayout, strict: Optional[bool] = None) -> List[str]:
    """
    Validate that `new` is a storage-compatible successor of `old`.

    Returns the list of tolerated gap warnings (lenient mode only). Raises
    StorageCollision on an incompatible field, LayoutError on a gap mismatch in strict
    mode.
    """
    pair = f"{old.name} -> {new.name}"
    for e in old:
        if e.field.is_gap:
            continue
        succ = new.at_slot(e.slot)
        if succ is None or succ.field.is_gap:
            raise StorageCollision(
                f"{pair}: field {e.field.name!r} was removed",
                slot=e.slot,
                kind="removed",
                data={"field": e.field.name, "layouts": pair},
            )
        if succ.field.name != e.field.name:
            kind = "reordered" if e.field.name in new else "renamed"
            raise StorageCollision(
                f"{pair}: slot {e.slot} holds {succ.field.name!r}, expected {e.field.name!r}",
                slot=e.slot,
                kind=kind,
                data={"field": e.field.name, "found": succ.field.name, "layouts": pair},
            )
        if succ.field.type is not e.field.type:
            raise StorageCollision(
                f"{pair}: field {e.field.name!r} changed type "
                f"{e.field.type.value} -> {succ.field.type.value}",
                slot=e.slot,
                kind="type-changed",
                data={"field": e.field.name, "layouts": pair},
            )

    warnings: List[str] = []
    for g in old.gaps():
        succ = new.at_slot(g.end - 1)
        if succ is not None and succ.field.is_gap and succ.end == g.end:
            continue
        msg = (
            f"{pair}: gap {g.field.name!r} ending at slot {g.end} is not preserved "
            f"(fields after it have shifted or the gap was dropped)"
        )
        if _strict(strict):
            raise LayoutError(msg, layout=new.name, data={"gap": g.field.name, "end": g.end})
        log.warning(msg, extra={"layout": new.name, "gap_end": g.end})
        warnings.append(msg)
    return warnings


def check_lineage(layouts: Sequence[StorageLayout], strict: Optional[bool] = None) -> List[str]:
    """Check every consecutive pair of versions; returns accumulated warnings."""
    warnings: List[str] = []
    for old, new in zip(layouts, layouts[1:]):
        warnings.extend(check_upgrade(old, new, strict=strict))
    return warnings


def check_disjoint(
    layout: StorageLayout,
    scheme: SlotScheme,
    *,
    region_limit: Optional[int] = None,
) -> None:
    """Raise StorageCollision if any control slot of `scheme` could alias a field."""
    for role, slot in scheme.items():
        hit = layout.at_slot(slot)
        if hit is not None:
            raise StorageCollision(
                f"{scheme.name} {role} slot collides with {layout.name}.{hit.field.name}",
                slot=slot,
                kind="control-overlaps-field",
                data={"role": role, "field": hit.field.name, "layout": layout.name},
            )
        if in_sequential_region(slot, region_limit):
            raise StorageCollision(
                f"{scheme.name} {role} slot lies in the sequential allocation region",
                slot=slot,
                kind="control-in-sequential-region",
                data={"role": role, "layout": layout.name},
            )


@dataclass
class AuditReport:
    scheme: str
    layouts: List[str]
    errors: List[ProxyError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "scheme": self.scheme,
            "layouts": list(self.layouts),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }


def audit(
    layouts: Sequence[StorageLayout],
    scheme: SlotScheme,
    *,
    strict: Optional[bool] = None,
    region_limit: Optional[int] = None,
) -> AuditReport:
    """Run every check and collect findings instead of stopping at the first one."""
    report = AuditReport(scheme=scheme.name, layouts=[lay.name for lay in layouts])
    for layout in layouts:
        try:
            check_disjoint(layout, scheme, region_limit=region_limit)
        except ProxyError as e:
            report.errors.append(e)
    for old, new in zip(layouts, layouts[1:]):
        try:
            report.warnings.extend(check_upgrade(old, new, strict=strict))
        except ProxyError as e:
            report.errors.append(e)
    return report


__all__ = ["check_upgrade", "check_lineage", "check_disjoint", "audit", "AuditReport"]
