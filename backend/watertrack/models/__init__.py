"""ORM models; importing this package registers every table on Base.metadata."""

from watertrack.models.user import User
from watertrack.models.water_record import WaterIntakeEntry, WaterRecord

__all__ = ["User", "WaterRecord", "WaterIntakeEntry"]
