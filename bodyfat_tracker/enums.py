"""
Closed enumerations shared by the calculator, the workflows and the store.

Every switch on these (formula selection, record tagging, history filtering)
is written exhaustively, so adding a member is a deliberate change.
"""

from enum import Enum


class Sex(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class MeasurementMethod(str, Enum):
    """How a body-fat percentage was obtained."""
    THREE_POINTS = "THREE_POINTS"
    SEVEN_POINTS = "SEVEN_POINTS"
    OTHER = "OTHER"


class WeightUnit(str, Enum):
    KG = "KG"
    LBS = "LBS"


class Protocol(str, Enum):
    """Skinfold measurement scheme driving a MeasurementWorkflow."""
    THREE_SITE = "THREE_SITE"
    SEVEN_SITE = "SEVEN_SITE"


class WorkflowPhase(str, Enum):
    EDITING = "EDITING"
    COMPLETE = "COMPLETE"
    CALCULATING = "CALCULATING"
    RESULT = "RESULT"
    FAILED = "FAILED"
    CLOSED = "CLOSED"


class HistoryFilter(str, Enum):
    ALL = "ALL"
    BODY_FAT = "BODY_FAT"
    WEIGHT = "WEIGHT"


class HistorySort(str, Enum):
    NEWEST_FIRST = "NEWEST_FIRST"
    OLDEST_FIRST = "OLDEST_FIRST"
