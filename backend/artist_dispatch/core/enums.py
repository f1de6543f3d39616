"""
Domain enums. Stored as plain strings in the database (String columns), so values
here must match what migrations and existing rows use.
"""
from enum import Enum, IntEnum


class ServiceCategory(str, Enum):
    MUA = "MUA"  # makeup
    HS = "HS"    # hair styling


class ArtistTier(IntEnum):
    """Lower value = higher priority when picking a SINGLE recipient."""
    FOUNDER = 1
    RESIDENT = 2
    FRESH = 3


class BatchMode(str, Enum):
    SINGLE = "SINGLE"
    BROADCAST = "BROADCAST"


class BatchState(str, Enum):
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"
    EXPIRED_NO_ACTION = "EXPIRED_NO_ACTION"


class BatchStartReason(str, Enum):
    UNDECIDED = "UNDECIDED"            # client marked undecided on the board
    PRIOR_DECLINED = "PRIOR_DECLINED"  # previous SINGLE batch went unanswered
    CHOSEN_ARTIST = "CHOSEN_ARTIST"    # client picked an artist (travelling fee)
    SECOND_OPTION = "SECOND_OPTION"    # client asked for a second option
    MANUAL = "MANUAL"                  # backoffice / debug


class ProposalResponse(str, Enum):
    YES = "YES"
    NO = "NO"


class Automation(str, Enum):
    """Labels written to the board's email-automation column."""
    SEND_OPTIONS = "Send options"
    SEND_NO_AVAILABILITY = "Send no availability"
