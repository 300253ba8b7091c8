# Jobs Monitor Package
"""
Amazon Jobs Monitor

Control panel for an external job-scraping monitor. Starts and stops the
monitor over a small REST surface and streams its log output to every
connected client over a WebSocket channel.

Architecture:
- domain/: Entities, value objects and error types
- application/: Control service and input validation
- infrastructure/: Logging, resilience policies and the default worker
- web/: FastAPI backend and the event broadcast channel
- client/: Reconnecting client session used by the terminal UI
- tui/: Textual terminal interface
"""

__version__ = "1.0.0"
