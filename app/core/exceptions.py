class SchedulingError(Exception):
    """Base class for failures of a whole engine call."""


class ServiceNotFoundError(SchedulingError):
    def __init__(self, service_id: str):
        super().__init__(f"Service not found or inactive: {service_id}")
        self.service_id = service_id


class ProfessionalNotFoundError(SchedulingError):
    def __init__(self, professional_id: str):
        super().__init__(f"Professional not found: {professional_id}")
        self.professional_id = professional_id


class CalendarDataError(SchedulingError):
    """Stored calendar data cannot be interpreted."""
