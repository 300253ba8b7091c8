# Web Interface
"""
Web interface: FastAPI control endpoints and the WebSocket event channel.
"""
from .api import MonitorAPI, create_app, run_server
from .broadcast import EventBroadcastChannel, Subscription

__all__ = ['MonitorAPI', 'create_app', 'run_server', 'EventBroadcastChannel', 'Subscription']
