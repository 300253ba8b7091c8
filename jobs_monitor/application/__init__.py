# Application Layer
"""
Application layer containing:
- Services: Control of the monitor worker and its run state
- Validation: Link and position rules shared by server and client
"""
from .services import MonitorControlService
from .validation import (
    FormValidation,
    filter_links,
    filter_positions,
    is_valid_link,
    validate_form,
)

__all__ = [
    'MonitorControlService',
    'FormValidation',
    'filter_links',
    'filter_positions',
    'is_valid_link',
    'validate_form',
]
