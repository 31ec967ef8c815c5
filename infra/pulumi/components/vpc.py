"""VPC Component - Network placement for the file system and functions.

Each availability zone gets a pair of subnets:
- Public: holds the NAT gateway for that zone
- Private: EFS mount targets and the Lambda network interfaces

Nothing in the stack is reachable from the internet except through the
HTTP API, so only the NAT gateways live in public subnets.
"""

import ipaddress

import pulumi
import pulumi_aws as aws

# Smallest subnet AWS accepts
MIN_SUBNET_PREFIX = 28


def subnet_blocks(cidr_block: str, zones: int) -> tuple[list[str], list[str]]:
    """Split ``cidr_block`` into equal public and private subnets per zone.

    The block is divided into the smallest power of two that fits two
    subnets per zone; public subnets take the first ``zones`` blocks and
    private subnets the next ``zones``.

    Raises:
        ValueError: ``zones`` is not positive or the block is too small.
    """
    if zones < 1:
        raise ValueError(f"availability zone count must be positive, got {zones}")

    network = ipaddress.ip_network(cidr_block)
    new_prefix = network.prefixlen + (2 * zones - 1).bit_length()
    if new_prefix > MIN_SUBNET_PREFIX:
        raise ValueError(
            f"{cidr_block} is too small for {zones} zones: subnets would be "
            f"/{new_prefix}, AWS requires /{MIN_SUBNET_PREFIX} or larger"
        )

    blocks = [str(b) for b in network.subnets(new_prefix=new_prefix)]
    return blocks[:zones], blocks[zones : 2 * zones]


class VPCComponent(pulumi.ComponentResource):
    """VPC spread over ``availability_zones`` zones with NAT egress."""

    def __init__(
        self,
        name: str,
        environment: str,
        cidr_block: str = "10.0.0.0/16",
        availability_zones: int = 2,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("blacklist:network:VPC", name, None, opts)

        self.tags = tags or {}
        self._name = name

        public_cidrs, private_cidrs = subnet_blocks(cidr_block, availability_zones)

        az_names = aws.get_availability_zones(state="available").names
        if len(az_names) < availability_zones:
            raise ValueError(
                f"Requested {availability_zones} availability zones, "
                f"region only offers {len(az_names)}"
            )

        self.vpc = aws.ec2.Vpc(
            f"{name}-vpc",
            cidr_block=cidr_block,
            # EFS mount targets are resolved by DNS name from Lambda
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags=self._tags(f"{name}-vpc"),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.igw = aws.ec2.InternetGateway(
            f"{name}-igw",
            vpc_id=self.vpc.id,
            tags=self._tags(f"{name}-igw"),
            opts=pulumi.ResourceOptions(parent=self),
        )

        # Shared by all public subnets
        self.public_rt = aws.ec2.RouteTable(
            f"{name}-public-rt",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    gateway_id=self.igw.id,
                ),
            ],
            tags=self._tags(f"{name}-public-rt"),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.public_subnets: list[aws.ec2.Subnet] = []
        self.private_subnets: list[aws.ec2.Subnet] = []
        self.nat_gateways: list[aws.ec2.NatGateway] = []

        # Dev shares one NAT gateway between zones to save cost
        nat_zones = 1 if environment == "dev" else availability_zones

        for i, az in enumerate(az_names[:availability_zones]):
            public_subnet = self._public_subnet(i, az, public_cidrs[i])
            if i < nat_zones:
                self.nat_gateways.append(self._nat_gateway(i, az, public_subnet))

            # Zones without their own NAT route through the first one
            nat = self.nat_gateways[min(i, nat_zones - 1)]
            self.private_subnets.append(
                self._private_subnet(i, az, private_cidrs[i], nat)
            )

        # Mount targets and function placement both need the private ids
        self.private_subnet_ids = pulumi.Output.all(
            *[s.id for s in self.private_subnets]
        ).apply(list)

        self.register_outputs(
            {
                "vpc_id": self.vpc.id,
                "private_subnet_ids": self.private_subnet_ids,
                "nat_gateway_count": len(self.nat_gateways),
            }
        )

    def _tags(self, resource_name: str) -> dict:
        return {**self.tags, "Name": resource_name}

    def _public_subnet(self, index: int, az: str, cidr: str) -> aws.ec2.Subnet:
        subnet = aws.ec2.Subnet(
            f"{self._name}-public-{index}",
            vpc_id=self.vpc.id,
            cidr_block=cidr,
            availability_zone=az,
            map_public_ip_on_launch=True,
            tags=self._tags(f"{self._name}-public-{az}"),
            opts=pulumi.ResourceOptions(parent=self),
        )
        aws.ec2.RouteTableAssociation(
            f"{self._name}-public-rta-{index}",
            subnet_id=subnet.id,
            route_table_id=self.public_rt.id,
            opts=pulumi.ResourceOptions(parent=self),
        )
        self.public_subnets.append(subnet)
        return subnet

    def _nat_gateway(
        self, index: int, az: str, public_subnet: aws.ec2.Subnet
    ) -> aws.ec2.NatGateway:
        eip = aws.ec2.Eip(
            f"{self._name}-eip-{index}",
            domain="vpc",
            tags=self._tags(f"{self._name}-nat-eip-{az}"),
            opts=pulumi.ResourceOptions(parent=self),
        )
        return aws.ec2.NatGateway(
            f"{self._name}-nat-{index}",
            subnet_id=public_subnet.id,
            allocation_id=eip.id,
            tags=self._tags(f"{self._name}-nat-{az}"),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
        )

    def _private_subnet(
        self, index: int, az: str, cidr: str, nat: aws.ec2.NatGateway
    ) -> aws.ec2.Subnet:
        """Private subnet with its own route table pointing at ``nat``.

        The updater downloads the Firehol feeds, so private subnets need
        outbound internet access.
        """
        subnet = aws.ec2.Subnet(
            f"{self._name}-private-{index}",
            vpc_id=self.vpc.id,
            cidr_block=cidr,
            availability_zone=az,
            tags=self._tags(f"{self._name}-private-{az}"),
            opts=pulumi.ResourceOptions(parent=self),
        )
        route_table = aws.ec2.RouteTable(
            f"{self._name}-private-rt-{index}",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    nat_gateway_id=nat.id,
                ),
            ],
            tags=self._tags(f"{self._name}-private-rt-{index}"),
            opts=pulumi.ResourceOptions(parent=self),
        )
        aws.ec2.RouteTableAssociation(
            f"{self._name}-private-rta-{index}",
            subnet_id=subnet.id,
            route_table_id=route_table.id,
            opts=pulumi.ResourceOptions(parent=self),
        )
        return subnet
