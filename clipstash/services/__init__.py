"""Application services"""

from .poll_service import PollService
from .maintenance_service import MaintenanceService

__all__ = ['PollService', 'MaintenanceService']
