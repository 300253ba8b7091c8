# Terminal TUI Package
"""
Terminal User Interface using Textual.
Works over SSH on headless servers.
"""
from .app import MonitorTUI, ConnectionWidget, StatusWidget, LogWidget, run_tui

__all__ = ['MonitorTUI', 'ConnectionWidget', 'StatusWidget', 'LogWidget', 'run_tui']
