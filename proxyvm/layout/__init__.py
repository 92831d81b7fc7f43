"""
proxyvm.layout — declared field layouts and the static checks run over them.
"""

from .check import (AuditReport, audit, check_disjoint, check_lineage,
                    check_upgrade)
from .fields import (Field, FieldType, SlottedField, StorageLayout, address,
                     boolean, gap, uint256)
from .loader import dump_layouts, layouts_from_obj, load_layouts

__all__ = [
    "Field",
    "FieldType",
    "SlottedField",
    "StorageLayout",
    "uint256",
    "address",
    "boolean",
    "gap",
    "check_upgrade",
    "check_lineage",
    "check_disjoint",
    "audit",
    "AuditReport",
    "load_layouts",
    "layouts_from_obj",
    "dump_layouts",
]
