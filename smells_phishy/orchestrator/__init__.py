from .scan_orchestrator import ScanOrchestrator, get_orchestrator

__all__ = ["ScanOrchestrator", "get_orchestrator"]
