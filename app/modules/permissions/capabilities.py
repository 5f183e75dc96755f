"""
Capability sets and the implication rules shared by every grant table.

A grant row is a fixed set of boolean capabilities. Two rules hold on every row,
narrowed to the capabilities its resource kind carries:
- any capability other than view being true implies view is true
- view being false forces every other capability to false
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.config.permissions_config import CAPABILITY_COLUMNS, get_capabilities


class ResourceKind(str, Enum):
    CLIENT = "client"
    SYSTEM = "system"
    COMPANY = "company"
    SECRET = "secret"
    VAULT_GROUP = "vault_group"


class Capability(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    CREATE = "create"
    DELETE = "delete"
    CREATE_MAINTENANCE = "create_maintenance"


def kind_capabilities(kind: ResourceKind) -> tuple:
    return tuple(Capability(c) for c in get_capabilities(kind.value))


def supports(kind: ResourceKind, capability: Capability) -> bool:
    return capability in kind_capabilities(kind)


class CapabilitySet(BaseModel):
    model_config = ConfigDict(frozen=True)

    view: bool = False
    edit: bool = False
    create: bool = False
    delete: bool = False
    create_maintenance: bool = False

    def get(self, capability: Capability) -> bool:
        return getattr(self, capability.value)

    def any_granted(self) -> bool:
        return any(self.get(c) for c in Capability)

    @classmethod
    def from_row(cls, kind: ResourceKind, row: dict) -> "CapabilitySet":
        # Columns are nullable in storage; null reads as not granted.
        return cls(**{
            c.value: bool(row.get(CAPABILITY_COLUMNS[c.value]))
            for c in kind_capabilities(kind)
        })

    def to_row(self, kind: ResourceKind) -> dict:
        return {CAPABILITY_COLUMNS[c.value]: self.get(c) for c in kind_capabilities(kind)}


def apply_capability(
    current: Optional[CapabilitySet],
    kind: ResourceKind,
    capability: Capability,
    value: bool,
) -> Optional[CapabilitySet]:
    """Return the row state after setting one capability, or None when there is nothing to write.

    Raises:
        ValueError: If the kind does not carry the capability.
    """
    if not supports(kind, capability):
        raise ValueError(f"Capability '{capability.value}' is not available on '{kind.value}' resources")
    if current is None:
        if not value:
            return None
        current = CapabilitySet()

    updates = {capability.value: value}
    if capability is Capability.VIEW and not value:
        updates.update({c.value: False for c in kind_capabilities(kind)})
    elif capability is not Capability.VIEW and value:
        updates[Capability.VIEW.value] = True
    return current.model_copy(update=updates)


def toggled(kind: ResourceKind, enable: bool) -> CapabilitySet:
    """Every capability of the kind set to enable."""
    return CapabilitySet(**{c.value: enable for c in kind_capabilities(kind)})


def evaluate(is_admin: bool, grant: Optional[CapabilitySet], action: Capability) -> bool:
    """Effective permission: admin overrides everything, a missing grant denies everything."""
    if is_admin:
        return True
    if grant is None:
        return False
    return grant.get(action)
