"""
Contracts for scheduler-triggered jobs.
"""

from datetime import datetime
from typing import List, Optional

from .base import BaseContract


class ReminderRunResponse(BaseContract):
    success: bool = True
    sent: int = 0


class KilledCounts(BaseContract):
    total: int = 0
    stalledInstalls: int = 0
    repeatedNoShows: int = 0
    excessiveReschedules: int = 0


class AutoKillRunResponse(BaseContract):
    success: bool = True
    timestamp: datetime
    killed: KilledCounts
    errors: Optional[List[str]] = None
