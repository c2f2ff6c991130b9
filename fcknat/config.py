"""Stack configuration for the NAT instance program."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import pulumi

from fcknat.components.nat_instance import SUPPORTED_ARCHITECTURES

LOG_LEVEL = os.getenv("FCKNAT_LOG_LEVEL", "INFO")


@dataclass
class NatInstanceConfig:
    """Settings read from the stack's ``Pulumi.<stack>.yaml``."""

    instance_type: str
    vpc_id: Optional[str] = None
    cidr: Optional[str] = None
    subnet_id: Optional[str] = None
    architecture: Optional[str] = None

    def __post_init__(self) -> None:
        if self.architecture is not None and self.architecture not in SUPPORTED_ARCHITECTURES:
            raise ValueError(
                f"architecture must be one of {', '.join(SUPPORTED_ARCHITECTURES)}, got {self.architecture!r}"
            )

    @classmethod
    def from_pulumi_config(cls, config: Optional[pulumi.Config] = None) -> "NatInstanceConfig":
        config = config or pulumi.Config()
        return cls(
            instance_type=config.require("instanceType"),
            vpc_id=config.get("vpcId"),
            cidr=config.get("cidr"),
            subnet_id=config.get("subnetId"),
            architecture=config.get("architecture"),
        )

    def component_args(self) -> dict:
        """Keyword arguments for ``NatInstance``."""
        return {
            "instance_type": self.instance_type,
            "vpc_id": self.vpc_id,
            "cidr": self.cidr,
            "subnet_id": self.subnet_id,
            "architecture": self.architecture,
        }
