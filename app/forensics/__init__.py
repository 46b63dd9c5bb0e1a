"""
Forensic access logging: fire-and-forget writes and leak investigation.
"""
from app.forensics.investigation import ForensicInvestigationService
from app.forensics.logger import ForensicLogger
from app.forensics.models import ForensicEvent, SuspiciousUser

__all__ = [
    "ForensicEvent",
    "ForensicInvestigationService",
    "ForensicLogger",
    "SuspiciousUser",
]
