from .diagnostics import Diagnostic, DiagnosticReporter, Location
from .graph import ModuleGraph
from .orchestrator import Orchestrator
from .stages import BuildContext, DynamicImportStage, Stage

__all__ = [
    "BuildContext",
    "Diagnostic",
    "DiagnosticReporter",
    "DynamicImportStage",
    "Location",
    "ModuleGraph",
    "Orchestrator",
    "Stage",
]
