"""
Input Validation

Rules shared by the control service (request filtering) and the
client session (form validation before a request is sent).
"""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from jobs_monitor.config import HIRING_LINK_PREFIX


LINK_REQUIRED = "Job link cannot be empty"
LINK_WRONG_PREFIX = "Must be a valid Amazon hiring link"
POSITION_REQUIRED = "Position cannot be empty"


def is_valid_link(link: str, prefix: str = HIRING_LINK_PREFIX) -> bool:
    """A link is accepted when, trimmed, it is non-empty and carries the prefix."""
    value = link.strip()
    return bool(value) and value.startswith(prefix)


def filter_links(links: Sequence[str], prefix: str = HIRING_LINK_PREFIX) -> List[str]:
    """Trimmed links that carry the hiring-site prefix, in input order."""
    return [link.strip() for link in links if is_valid_link(link, prefix)]


def filter_positions(positions: Sequence[str]) -> List[str]:
    """Trimmed, non-blank positions, in input order."""
    return [position.strip() for position in positions if position.strip()]


@dataclass(frozen=True)
class FormValidation:
    """
    Per-field validation result for the start form.

    Each error tuple is aligned with the submitted fields; an empty string
    means the field at that index is fine.
    """
    link_errors: Tuple[str, ...]
    position_errors: Tuple[str, ...]

    @property
    def is_valid(self) -> bool:
        return not any(self.link_errors) and not any(self.position_errors)


def _validate_link_fields(links: Sequence[str], prefix: str) -> Tuple[str, ...]:
    errors = []
    for link in links:
        value = link.strip()
        if not value:
            # Blank fields only matter when they are the only field
            errors.append(LINK_REQUIRED if len(links) == 1 else "")
        elif not value.startswith(prefix):
            errors.append(LINK_WRONG_PREFIX)
        else:
            errors.append("")
    return tuple(errors)


def _validate_position_fields(positions: Sequence[str]) -> Tuple[str, ...]:
    errors = []
    for position in positions:
        if not position.strip():
            errors.append(POSITION_REQUIRED if len(positions) == 1 else "")
        else:
            errors.append("")
    return tuple(errors)


def validate_form(
    links: Sequence[str],
    positions: Sequence[str],
    prefix: str = HIRING_LINK_PREFIX,
) -> FormValidation:
    """
    Validate the start form field by field.

    Args:
        links: Job link fields as entered
        positions: Position fields as entered
        prefix: Accepted hiring-site prefix

    Returns:
        FormValidation with one error slot per field
    """
    return FormValidation(
        link_errors=_validate_link_fields(links, prefix),
        position_errors=_validate_position_fields(positions),
    )
