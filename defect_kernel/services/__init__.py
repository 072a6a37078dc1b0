"""Services for the defect kernel (write side)."""

from defect_kernel.services.commit_executor import CommitExecutor, CommitOutcome
from defect_kernel.services.defect_number_service import (
    DefectNumber,
    DefectNumberService,
    parse_defect_no,
)
from defect_kernel.services.distribution_orchestrator import (
    DistributionOrchestrator,
    DistributionSettings,
)
from defect_kernel.services.simulation_planner import SimulationPlanner

__all__ = [
    "CommitExecutor",
    "CommitOutcome",
    "DefectNumber",
    "DefectNumberService",
    "DistributionOrchestrator",
    "DistributionSettings",
    "SimulationPlanner",
    "parse_defect_no",
]
