"""Application services for the kudet CLI.

Services implement the release logic, coordinating between the domain layer
(core/) and infrastructure (git/, platform/).
"""

from kudet.services.release.docker_tag import compute_docker_tag, sanitize_docker_tag
from kudet.services.release.errors import ReleaseError
from kudet.services.release.orchestrator import (
    ReleaseOrchestrator,
    ReleaseRequest,
    ReleaseSummary,
)
from kudet.services.release.version_file import update_version_in_file

__all__ = [
    # Errors
    "ReleaseError",
    # Release
    "ReleaseOrchestrator",
    "ReleaseRequest",
    "ReleaseSummary",
    # Sibling commands
    "compute_docker_tag",
    "sanitize_docker_tag",
    "update_version_in_file",
]
