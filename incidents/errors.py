"""Exceptions raised by the incident pipeline (classification and persistence)."""


class IncidentError(Exception):
    """Base class for every failure in the incident pipeline."""


class ClassificationError(IncidentError):
    """The AI service could not produce a usable analysis."""


class PersistenceError(IncidentError):
    """The incident store rejected or failed an operation."""


class IncidentNotFoundError(PersistenceError):
    def __init__(self, incident_id: str):
        super().__init__(f"Incident '{incident_id}' not found.")
        self.incident_id = incident_id
