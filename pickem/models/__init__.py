from pickem import db  # noqa: F401 - imported for model imports

from .invitation import Invitation
from .participant import Participant
from .pick import Pick
from .pool import Pool
from .scheduled_game import ScheduledGame
from .season import Season
from .system_setting import SystemSetting
from .team import Team
from .user import User
from .weekly_standing import WeeklyStanding

__all__ = [
    "User",
    "Team",
    "Season",
    "ScheduledGame",
    "Pool",
    "Participant",
    "Pick",
    "WeeklyStanding",
    "Invitation",
    "SystemSetting",
]
