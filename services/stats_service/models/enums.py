"""Enum definitions for stats service models."""

import enum
from typing import Optional


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ClassCategory(str, enum.Enum):
    DURABILITY = "durability"
    ANAEROBIC = "anaerobic"
    MOMENTUM = "momentum"
    DELOAD = "deload"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["ClassCategory"]:
        """Map a raw scheduling-platform label ("DURABILITY", " Deload ") to a category."""
        if not label:
            return None
        try:
            return cls(label.strip().lower())
        except ValueError:
            return None
