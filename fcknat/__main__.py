"""A Pulumi program that replaces a NAT gateway with a fck-nat instance"""

import logging

import pulumi

from fcknat.components import NatInstance
from fcknat.config import LOG_LEVEL, NatInstanceConfig

logging.basicConfig(level=LOG_LEVEL)

settings = NatInstanceConfig.from_pulumi_config()

# One self-healing NAT instance in a public subnet of the target VPC
nat = NatInstance('nat', **settings.component_args())

pulumi.export('instance_id', nat.instance_id)
pulumi.export('subnet_id', nat.subnet_id)
pulumi.export('network_interface_id', nat.network_interface_id)
pulumi.export('security_group_id', nat.security_group_id)
pulumi.export('autoscaling_group_name', nat.autoscaling_group_name)
