"""Public subnet selection for a VPC.

A subnet counts as public when its route table sends ``0.0.0.0/0`` to an
internet gateway. Subnets without an explicit association use the
VPC's main route table. VPCs that only have their main route table are treated as
flat, and every subnet in them is a candidate.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from pulumi import Output
from pulumi_aws import ec2

__all__ = [
    "NoPublicSubnetError",
    "has_public_route",
    "vpc_has_multiple_route_tables",
    "public_subnet_ids",
    "choose_subnet",
    "candidate_subnet_ids",
    "select_public_subnet",
]

DEFAULT_ROUTE_CIDR = "0.0.0.0/0"
INTERNET_GATEWAY_PREFIX = "igw-"


class NoPublicSubnetError(ValueError):
    """Raised when a VPC has no subnet the NAT instance can live in."""

    def __init__(self, vpc_id: Optional[str] = None) -> None:
        self.vpc_id = vpc_id
        where = f"VPC {vpc_id}" if vpc_id else "the VPC"
        super().__init__(f"No public subnet found in {where}")


def has_public_route(routes: Optional[Iterable]) -> bool:
    """True if any route sends the default route through an internet gateway."""
    for route in routes or []:
        gateway_id = route.gateway_id or ""
        if route.cidr_block == DEFAULT_ROUTE_CIDR and gateway_id.startswith(INTERNET_GATEWAY_PREFIX):
            return True
    return False


def vpc_has_multiple_route_tables(route_table_ids: Sequence[str], main_route_table_id: str) -> bool:
    if len(route_table_ids) == 1 and route_table_ids[0] == main_route_table_id:
        return False
    return True


def _first_associated_subnet(associations: Optional[Iterable]) -> Optional[str]:
    for association in associations or []:
        if association.subnet_id:
            return association.subnet_id
    return None


def _is_implicit_main(associations: Optional[Iterable]) -> bool:
    # The main table association carries no subnet id
    return any(getattr(a, "main", False) and not a.subnet_id for a in associations or [])


def public_subnet_ids(route_tables: Iterable, vpc_subnet_ids: Sequence[str] = ()) -> List[str]:
    """Collect the public subnet ids of a VPC, sorted by id.

    Each public route table contributes its first explicitly associated
    subnet. A public main route table also contributes every subnet of the
    VPC that no table is explicitly associated with.
    """
    route_tables = list(route_tables)
    explicit = {
        a.subnet_id
        for table in route_tables
        for a in table.associations or []
        if a.subnet_id
    }
    subnet_ids = set()
    for table in route_tables:
        if not has_public_route(table.routes):
            continue
        subnet_id = _first_associated_subnet(table.associations)
        if subnet_id is not None:
            subnet_ids.add(subnet_id)
        if _is_implicit_main(table.associations):
            subnet_ids.update(s for s in vpc_subnet_ids if s not in explicit)
        elif subnet_id is None:
            logging.warning(f"Public route table {table.route_table_id} has no subnet association, skipping")
    return sorted(subnet_ids)


def choose_subnet(candidate_ids: Sequence[str], vpc_id: Optional[str] = None) -> str:
    """Pick the lexicographically smallest candidate subnet id."""
    if not candidate_ids:
        logging.error(f"No public subnet candidates for VPC {vpc_id or '<unknown>'}")
        raise NoPublicSubnetError(vpc_id)
    return sorted(candidate_ids)[0]


def _subnets_in_vpc(vpc_id: str) -> Output:
    subnets = ec2.get_subnets_output(
        filters=[ec2.GetSubnetsFilterArgs(name="vpc-id", values=[vpc_id])],
    )
    return subnets.ids.apply(lambda ids: sorted(ids or []))


def _subnets_from_route_tables(route_table_ids: Sequence[str], vpc_id: str) -> Output:
    tables = [ec2.get_route_table_output(route_table_id=rt_id) for rt_id in route_table_ids]
    return Output.all(_subnets_in_vpc(vpc_id), *tables).apply(
        lambda args: public_subnet_ids(args[1:], args[0] or [])
    )


def candidate_subnet_ids(vpc) -> Output:
    """Resolve the sorted list of public subnet ids for a looked-up VPC.

    ``vpc`` is the result of ``ec2.get_vpc_output``; its id and main route
    table id are joined with the VPC's route table ids before any subnet is
    inspected.
    """
    route_table_ids = ec2.get_route_tables_output(vpc_id=vpc.id).ids

    def _resolve(args):
        table_ids, main_table_id, vpc_id = args
        table_ids = list(table_ids or [])
        if vpc_has_multiple_route_tables(table_ids, main_table_id):
            logging.info(f"VPC {vpc_id} has {len(table_ids)} route tables, scanning for internet gateway routes")
            return _subnets_from_route_tables(table_ids, vpc_id)
        logging.info(f"VPC {vpc_id} only has its main route table, every subnet is a candidate")
        return _subnets_in_vpc(vpc_id)

    return Output.all(route_table_ids, vpc.main_route_table_id, vpc.id).apply(_resolve)


def select_public_subnet(vpc) -> Output:
    """Choose the subnet the NAT instance is placed in."""

    def _choose(args):
        candidates, vpc_id = args
        subnet_id = choose_subnet(candidates, vpc_id)
        logging.info(f"Selected subnet {subnet_id} from {len(candidates)} candidate(s) in VPC {vpc_id}")
        return subnet_id

    return Output.all(candidate_subnet_ids(vpc), vpc.id).apply(_choose)
