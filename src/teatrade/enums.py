"""Enumerations mirrored from the tea-trading schema."""
from __future__ import annotations

from enum import Enum


class TeaGrade(str, Enum):
    PD = "PD"
    PD2 = "PD2"
    DUST1 = "DUST1"
    DUST2 = "DUST2"
    PF1 = "PF1"
    BP1 = "BP1"
    FNGS = "FNGS"
    FNGS1 = "FNGS1"
    FNGS2 = "FNGS2"
    BMF = "BMF"
    BMF1 = "BMF1"
    BMFD = "BMFD"
    BP = "BP"
    BP2 = "BP2"
    DUST = "DUST"
    PF2 = "PF2"
    PF = "PF"
    BOP = "BOP"
    BOPF = "BOPF"


class Broker(str, Enum):
    AMBR = "AMBR"
    ANJL = "ANJL"
    ATBL = "ATBL"
    ATLS = "ATLS"
    BICL = "BICL"
    BTBL = "BTBL"
    CENT = "CENT"
    COMK = "COMK"
    CTBL = "CTBL"
    PRME = "PRME"
    PTBL = "PTBL"
    TBEA = "TBEA"
    UNTB = "UNTB"
    VENS = "VENS"
    TTBL = "TTBL"
    ABBL = "ABBL"


class TeaCategory(str, Enum):
    M1 = "M1"
    M2 = "M2"
    M3 = "M3"
    S1 = "S1"


class ShipmentStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Vessel(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    FOURTH = "fourth"


class PackagingInstructions(str, Enum):
    ONE_JUTE_TWO_POLLY = "oneJutetwoPolly"
    ONE_JUTE_ONE_POLLY = "oneJuteOnePolly"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class DuplicateAction(str, Enum):
    """How the server treats uploaded rows whose lot number already exists."""

    SKIP = "skip"
    REPLACE = "replace"


class AssignmentStatus(str, Enum):
    ALL = "all"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


def values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


__all__ = [
    "TeaGrade",
    "Broker",
    "TeaCategory",
    "ShipmentStatus",
    "Vessel",
    "PackagingInstructions",
    "Role",
    "DuplicateAction",
    "AssignmentStatus",
    "values",
]
