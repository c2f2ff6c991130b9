"""Pulumi reusable components package.

This package groups the NAT instance component and its helpers so they can
be imported as:

    from fcknat.components import NatInstance
"""
from .nat_instance import NatInstance  # noqa: F401
from .subnets import NoPublicSubnetError, select_public_subnet  # noqa: F401
