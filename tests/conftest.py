import json
import os
import sys

import pulumi
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


class NatMocks(pulumi.runtime.Mocks):
    """Answers provider calls from an in-memory VPC description."""

    def __init__(self, vpc):
        self.vpc = vpc
        self.calls = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        if args.typ == 'aws:iam/role:Role':
            outputs['name'] = args.name
        elif args.typ == 'aws:iam/instanceProfile:InstanceProfile':
            outputs['arn'] = f"arn:aws:iam::123456789012:instance-profile/{args.name}"
        elif args.typ == 'aws:autoscaling/group:Group':
            outputs['name'] = args.name
        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        self.calls.append(args)
        vpc = self.vpc
        if args.token == 'aws:ec2/getVpc:getVpc':
            return {
                'id': vpc['id'],
                'cidrBlock': vpc['cidr_block'],
                'mainRouteTableId': vpc['main_route_table_id'],
            }
        if args.token == 'aws:ec2/getRouteTables:getRouteTables':
            return {'id': vpc['id'], 'ids': list(vpc['route_tables'])}
        if args.token == 'aws:ec2/getRouteTable:getRouteTable':
            table_id = args.args['routeTableId']
            table = vpc['route_tables'][table_id]
            return {
                'routeTableId': table_id,
                'vpcId': vpc['id'],
                'routes': [
                    {'cidrBlock': cidr, 'gatewayId': gateway}
                    for cidr, gateway in table.get('routes', [])
                ],
                'associations': [
                    {'routeTableId': table_id, 'subnetId': subnet_id, 'main': subnet_id is None}
                    for subnet_id in table.get('subnets', [])
                ],
            }
        if args.token == 'aws:ec2/getSubnets:getSubnets':
            return {'id': vpc['id'], 'ids': list(vpc['subnets'])}
        if args.token == 'aws:ec2/getAmi:getAmi':
            return {'id': 'ami-0fcknat', 'name': 'fck-nat-al2023-hvm-1.3.0-arm64-ebs'}
        if args.token == 'aws:iam/getPolicyDocument:getPolicyDocument':
            return {'id': 'policy', 'json': json.dumps({'Statement': args.args.get('statements', [])})}
        if args.token == 'aws:ec2/getInstances:getInstances':
            return {'id': 'instances', 'ids': ['i-0fcknat']}
        return {}


@pytest.fixture
def multi_route_vpc():
    """VPC with one public (igw) and one private route table."""
    return {
        'id': 'vpc-123',
        'cidr_block': '10.0.0.0/16',
        'main_route_table_id': 'rtb-main',
        'route_tables': {
            'rtb-a': {'routes': [('0.0.0.0/0', 'igw-1')], 'subnets': ['subnet-b']},
            'rtb-b': {'routes': [('10.0.0.0/16', 'local')], 'subnets': ['subnet-a']},
        },
        'subnets': ['subnet-a', 'subnet-b'],
    }


@pytest.fixture
def flat_vpc():
    """VPC that only has its main route table."""
    return {
        'id': 'vpc-flat',
        'cidr_block': '172.31.0.0/16',
        'main_route_table_id': 'rtb-main',
        'route_tables': {
            'rtb-main': {'routes': [('0.0.0.0/0', 'igw-default')], 'subnets': [None]},
        },
        'subnets': ['subnet-3', 'subnet-1', 'subnet-2'],
    }


@pytest.fixture
def private_only_vpc():
    return {
        'id': 'vpc-private',
        'cidr_block': '10.1.0.0/16',
        'main_route_table_id': 'rtb-main',
        'route_tables': {
            'rtb-main': {'routes': [('10.1.0.0/16', 'local')], 'subnets': [None]},
            'rtb-private': {'routes': [('0.0.0.0/0', 'nat-0abc')], 'subnets': ['subnet-p']},
        },
        'subnets': ['subnet-p'],
    }


def install_mocks(vpc):
    mocks = NatMocks(vpc)
    pulumi.runtime.set_mocks(mocks, project='fcknat', stack='test', preview=False)
    return mocks


@pytest.fixture
def multi_route_mocks(multi_route_vpc):
    return install_mocks(multi_route_vpc)


@pytest.fixture
def flat_mocks(flat_vpc):
    return install_mocks(flat_vpc)


@pytest.fixture
def private_only_mocks(private_only_vpc):
    return install_mocks(private_only_vpc)


@pytest.fixture
def main_public_vpc():
    """Main route table reaches the igw, one added table is private."""
    return {
        'id': 'vpc-mainpub',
        'cidr_block': '10.2.0.0/16',
        'main_route_table_id': 'rtb-main',
        'route_tables': {
            'rtb-main': {'routes': [('0.0.0.0/0', 'igw-1')], 'subnets': [None]},
            'rtb-priv': {'routes': [('0.0.0.0/0', 'nat-1')], 'subnets': ['subnet-3']},
        },
        'subnets': ['subnet-2', 'subnet-1', 'subnet-3'],
    }


@pytest.fixture
def main_public_mocks(main_public_vpc):
    return install_mocks(main_public_vpc)
