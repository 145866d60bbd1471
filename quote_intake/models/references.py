"""Reference targets for cross-collection links.

Accidents and tickets point at a driver, deductibles and lienholders point at a
vehicle. Driver references may also name the primary applicant or the spouse,
who are never stored in the driver collection; those two values are reserved
and every validator resolves references through ``ReferenceTarget`` so they are
recognized in one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Optional


class DriverSentinel(str, Enum):
    """Reserved driver reference values for implicit drivers."""

    OWNER = "__owner__"
    SPOUSE = "__spouse__"


class ReferenceKind(str, Enum):
    """What a reference value points at."""

    ENTITY = "entity"
    OWNER = "owner"
    SPOUSE = "spouse"
    NONE = "none"


@dataclass(frozen=True)
class ReferenceTarget:
    """Parsed form of a raw reference value.

    Attributes:
        kind: Kind of target
        entity_id: Referenced id when ``kind`` is ENTITY
    """
    kind: ReferenceKind
    entity_id: Optional[str] = None

    @classmethod
    def none(cls) -> "ReferenceTarget":
        return cls(ReferenceKind.NONE)

    @classmethod
    def owner(cls) -> "ReferenceTarget":
        return cls(ReferenceKind.OWNER)

    @classmethod
    def spouse(cls) -> "ReferenceTarget":
        return cls(ReferenceKind.SPOUSE)

    @classmethod
    def entity(cls, entity_id: str) -> "ReferenceTarget":
        return cls(ReferenceKind.ENTITY, entity_id)

    @classmethod
    def from_driver_value(cls, value: Optional[str]) -> "ReferenceTarget":
        """Parse a driver reference, recognizing the owner/spouse sentinels.

        Empty strings are treated the same as a missing reference.
        """
        if not value:
            return cls.none()
        if value == DriverSentinel.OWNER.value:
            return cls.owner()
        if value == DriverSentinel.SPOUSE.value:
            return cls.spouse()
        return cls.entity(value)

    @classmethod
    def from_vehicle_value(cls, value: Optional[str]) -> "ReferenceTarget":
        """Parse a vehicle reference. Vehicles have no implicit targets."""
        if not value:
            return cls.none()
        return cls.entity(value)

    @property
    def value(self) -> Optional[str]:
        """Raw value to store back into a reference field."""
        if self.kind == ReferenceKind.OWNER:
            return DriverSentinel.OWNER.value
        if self.kind == ReferenceKind.SPOUSE:
            return DriverSentinel.SPOUSE.value
        return self.entity_id

    @property
    def is_implicit(self) -> bool:
        return self.kind in (ReferenceKind.OWNER, ReferenceKind.SPOUSE)

    def is_dangling(self, known_ids: AbstractSet[str]) -> bool:
        """Whether this reference names an entity that does not exist."""
        return self.kind == ReferenceKind.ENTITY and self.entity_id not in known_ids
