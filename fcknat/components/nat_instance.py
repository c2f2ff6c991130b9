"""Self-healing NAT instance component built on fck-nat."""
from __future__ import annotations

import logging
from typing import Optional

import pulumi
from pulumi import Output, ResourceOptions
from pulumi_aws import autoscaling, ec2, iam, vpc as vpc_rules

from .subnets import select_public_subnet
from .user_data import user_data_for

__all__ = ["NatInstance", "FCK_NAT_AMI_OWNER", "FCK_NAT_AMI_NAME", "SUPPORTED_ARCHITECTURES"]

FCK_NAT_AMI_OWNER = "568608671756"
FCK_NAT_AMI_NAME = "fck-nat-al2023-*"
SUPPORTED_ARCHITECTURES = ("arm64", "x86_64")
ASG_NAME_TAG = "aws:autoscaling:groupName"


class NatInstance(pulumi.ComponentResource):
    """Run fck-nat as a single-instance auto scaling group in a public subnet.

    The instance is replaced by the group when it fails. Its traffic leaves
    through a static network interface with source/destination checking
    disabled, which the boot script hands to fck-nat so that private route
    tables can point at a stable interface id.
    """

    security_group: ec2.SecurityGroup
    ingress_rule: vpc_rules.SecurityGroupIngressRule
    egress_rule: vpc_rules.SecurityGroupEgressRule
    network_interface: ec2.NetworkInterface
    role: iam.Role
    role_policy: iam.RolePolicy
    instance_profile: iam.InstanceProfile
    launch_template: ec2.LaunchTemplate
    autoscaling_group: autoscaling.Group
    instance_id: pulumi.Output[Optional[str]]
    subnet_id: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        *,
        instance_type: pulumi.Input[str],
        vpc_id: Optional[pulumi.Input[str]] = None,
        cidr: Optional[pulumi.Input[str]] = None,
        subnet_id: Optional[pulumi.Input[str]] = None,
        architecture: Optional[str] = None,
        opts: ResourceOptions | None = None,
    ) -> None:
        if architecture is not None and architecture not in SUPPORTED_ARCHITECTURES:
            raise ValueError(f"architecture must be one of {', '.join(SUPPORTED_ARCHITECTURES)}, got {architecture!r}")

        super().__init__("fcknat:index:NatInstance", name, None, opts)

        child_opts = ResourceOptions(parent=self)

        if vpc_id is None:
            vpc = ec2.get_vpc_output(default=True)
        else:
            vpc = ec2.get_vpc_output(id=vpc_id)

        if subnet_id is None:
            self.subnet_id = select_public_subnet(vpc)
        else:
            logging.info(f"{name}: using explicitly configured subnet")
            self.subnet_id = Output.from_input(subnet_id)

        self.security_group = ec2.SecurityGroup(
            f"{name}-natsecuritygroup",
            vpc_id=vpc.id,
            description="Security group for FCK NAT instance",
            opts=child_opts,
        )

        sg_opts = ResourceOptions(parent=self.security_group)

        # Everything inside the VPC (or the configured range) may route through the instance
        self.ingress_rule = vpc_rules.SecurityGroupIngressRule(
            f"{name}-ingress",
            security_group_id=self.security_group.id,
            cidr_ipv4=cidr if cidr is not None else vpc.cidr_block,
            ip_protocol="-1",
            opts=sg_opts,
        )

        self.egress_rule = vpc_rules.SecurityGroupEgressRule(
            f"{name}-egress",
            security_group_id=self.security_group.id,
            cidr_ipv4="0.0.0.0/0",
            ip_protocol="-1",
            opts=sg_opts,
        )

        self.network_interface = ec2.NetworkInterface(
            f"{name}-natnetworkinterface",
            subnet_id=self.subnet_id,
            security_groups=[self.security_group.id],
            source_dest_check=False,
            opts=child_opts,
        )

        assume_role_policy = iam.get_policy_document(
            statements=[
                iam.GetPolicyDocumentStatementArgs(
                    actions=["sts:AssumeRole"],
                    principals=[
                        iam.GetPolicyDocumentStatementPrincipalArgs(
                            type="Service",
                            identifiers=["ec2.amazonaws.com"],
                        )
                    ],
                )
            ],
        )

        self.role = iam.Role(
            f"{name}-fckrole",
            assume_role_policy=assume_role_policy.json,
            opts=child_opts,
        )

        # fck-nat attaches the static interface and moves elastic IPs itself
        role_policy = iam.get_policy_document(
            statements=[
                iam.GetPolicyDocumentStatementArgs(
                    effect="Allow",
                    actions=[
                        "ec2:AttachNetworkInterface",
                        "ec2:ModifyNetworkInterfaceAttribute",
                    ],
                    resources=["*"],
                ),
                iam.GetPolicyDocumentStatementArgs(
                    effect="Allow",
                    actions=[
                        "ec2:AssociateAddress",
                        "ec2:DisassociateAddress",
                    ],
                    resources=["*"],
                ),
            ],
        )

        self.role_policy = iam.RolePolicy(
            f"{name}-rpa",
            role=self.role.name,
            policy=role_policy.json,
            opts=child_opts,
        )

        self.instance_profile = iam.InstanceProfile(
            f"{name}-instanceprofile",
            role=self.role.name,
            opts=child_opts,
        )

        user_data = user_data_for(self.network_interface.id)

        ami_filters = [ec2.GetAmiFilterArgs(name="name", values=[FCK_NAT_AMI_NAME])]
        if architecture is not None:
            ami_filters.append(ec2.GetAmiFilterArgs(name="architecture", values=[architecture]))

        ami = ec2.get_ami(
            most_recent=True,
            owners=[FCK_NAT_AMI_OWNER],
            filters=ami_filters,
        )
        logging.info(f"{name}: using fck-nat AMI {ami.id}")

        self.launch_template = ec2.LaunchTemplate(
            f"{name}-launchtemplate",
            image_id=ami.id,
            instance_type=instance_type,
            iam_instance_profile=ec2.LaunchTemplateIamInstanceProfileArgs(arn=self.instance_profile.arn),
            vpc_security_group_ids=[self.security_group.id],
            user_data=user_data,
            opts=child_opts,
        )

        self.autoscaling_group = autoscaling.Group(
            f"{name}-asg",
            max_size=1,
            min_size=1,
            desired_capacity=1,
            launch_template=autoscaling.GroupLaunchTemplateArgs(
                id=self.launch_template.id,
                version="$Latest",
            ),
            vpc_zone_identifiers=[self.subnet_id],
            opts=child_opts,
        )

        instances = ec2.get_instances_output(
            instance_tags={ASG_NAME_TAG: self.autoscaling_group.name},
            instance_state_names=["pending", "running"],
        )
        self.instance_id = instances.ids.apply(lambda ids: ids[0] if ids else None)

        self.network_interface_id = self.network_interface.id
        self.security_group_id = self.security_group.id
        self.launch_template_id = self.launch_template.id
        self.autoscaling_group_name = self.autoscaling_group.name

        self.register_outputs(
            {
                "instance_id": self.instance_id,
                "subnet_id": self.subnet_id,
                "network_interface_id": self.network_interface_id,
                "security_group_id": self.security_group_id,
                "launch_template_id": self.launch_template_id,
                "autoscaling_group_name": self.autoscaling_group_name,
            }
        )
