from .client import XxlJobClient
from .session import SchedulerSession

__all__ = ["SchedulerSession", "XxlJobClient"]
