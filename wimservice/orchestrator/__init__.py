# wimservice/orchestrator/__init__.py
from .models import ServicingReport, ServicingRequest, ServicingState
from .orchestrator import DISPOSITION_OPTIONS, ServicingOrchestrator

__all__ = [
    "DISPOSITION_OPTIONS",
    "ServicingOrchestrator",
    "ServicingReport",
    "ServicingRequest",
    "ServicingState",
]
