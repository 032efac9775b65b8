from .app import App, main, run_main
from .supervisor import LoopSupervisor

__all__ = ["App", "main", "run_main", "LoopSupervisor"]
