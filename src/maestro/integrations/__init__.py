"""
maestro.integrations - External Collaborator Contracts
========================================================

Maestro depends on two collaborators it does not implement: capability
invocation and health probing. This package defines their signatures and
ships in-process implementations usable in tests and single-process
deployments.
"""

from maestro.integrations.invocation import (
    CallTableInvoker,
    CapabilityHandler,
    CapabilityInvoker,
    HealthProbe,
    StaticHealthProbe,
)

__all__ = [
    "CapabilityInvoker",
    "CapabilityHandler",
    "HealthProbe",
    "CallTableInvoker",
    "StaticHealthProbe",
]
