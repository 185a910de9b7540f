from buildmatrix.orchestrator.coordinator import Orchestrator
from buildmatrix.orchestrator.registry import ConfigurationRegistry
from buildmatrix.orchestrator.report_collector import ReportCollector
from buildmatrix.orchestrator.report_formatter import ReportFormatter
from buildmatrix.orchestrator.variants import create_default_registry, default_configurations

__all__ = [
    "Orchestrator",
    "ConfigurationRegistry",
    "ReportCollector",
    "ReportFormatter",
    "create_default_registry",
    "default_configurations",
]
