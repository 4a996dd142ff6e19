"""Provisioning: prerequisites, staging and installer execution."""

from sensor_provision.provision.provisioner import (
    ProvisionError,
    ProvisionStep,
    Provisioner,
    StepKind,
    provision,
)

__all__ = ["ProvisionError", "ProvisionStep", "Provisioner", "StepKind", "provision"]
