"""File System Component - Shared EFS storage for the functions.

Creates an elastic file system with one mount target per private subnet.
The blacklist data written by the updater is read back by the lookup
function through an access point.
"""

import pulumi
import pulumi_aws as aws

NFS_PORT = 2049


class FileSystemComponent(pulumi.ComponentResource):
    """EFS file system reachable from the VPC private subnets.

    The file system is ephemeral: it is deleted together with the stack
    unless ``retain`` is set.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        vpc_id: pulumi.Input[str],
        subnet_ids: list[pulumi.Input[str]],
        retain: bool = False,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("blacklist:storage:FileSystem", name, None, opts)

        self.tags = tags or {}
        self._name = name

        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=vpc_id,
            description="Security group for EFS mount targets",
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=["0.0.0.0/0"],
                    description="Allow all outbound",
                ),
            ],
            tags={**self.tags, "Name": f"{name}-sg"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.file_system = aws.efs.FileSystem(
            f"{name}-efs",
            # Idempotency key for the EFS API, one file system per environment
            creation_token=f"firehol-blacklist-{environment}",
            encrypted=True,
            performance_mode="generalPurpose",
            throughput_mode="bursting",
            tags={**self.tags, "Name": f"{name}-efs"},
            opts=pulumi.ResourceOptions(parent=self, retain_on_delete=retain),
        )

        self.mount_targets: list[aws.efs.MountTarget] = []
        for i, subnet_id in enumerate(subnet_ids):
            mount_target = aws.efs.MountTarget(
                f"{name}-mt-{i}",
                file_system_id=self.file_system.id,
                subnet_id=subnet_id,
                security_groups=[self.security_group.id],
                opts=pulumi.ResourceOptions(parent=self),
            )
            self.mount_targets.append(mount_target)

        self.access_points: dict[str, aws.efs.AccessPoint] = {}

        self.register_outputs(
            {
                "file_system_id": self.file_system.id,
                "file_system_arn": self.file_system.arn,
            }
        )

    def add_access_point(
        self,
        name: str,
        path: str,
        uid: int = 1001,
        gid: int = 1001,
        permissions: str = "750",
    ) -> aws.efs.AccessPoint:
        """Add a POSIX access point exporting ``path``.

        The root directory is created on first use, owned by ``uid``/``gid``
        with ``permissions``; every client connecting through the access
        point acts as that same POSIX user.
        """
        access_point = aws.efs.AccessPoint(
            f"{self._name}-{name}",
            file_system_id=self.file_system.id,
            posix_user=aws.efs.AccessPointPosixUserArgs(
                uid=uid,
                gid=gid,
            ),
            root_directory=aws.efs.AccessPointRootDirectoryArgs(
                path=path,
                creation_info=aws.efs.AccessPointRootDirectoryCreationInfoArgs(
                    owner_uid=uid,
                    owner_gid=gid,
                    permissions=permissions,
                ),
            ),
            tags={**self.tags, "Name": f"{self._name}-{name}"},
            opts=pulumi.ResourceOptions(parent=self),
        )
        self.access_points[name] = access_point
        return access_point

    def allow_nfs_from(
        self, name: str, source_security_group_id: pulumi.Input[str]
    ) -> aws.ec2.SecurityGroupRule:
        """Admit NFS traffic from another security group."""
        return aws.ec2.SecurityGroupRule(
            f"{self._name}-nfs-from-{name}",
            type="ingress",
            from_port=NFS_PORT,
            to_port=NFS_PORT,
            protocol="tcp",
            security_group_id=self.security_group.id,
            source_security_group_id=source_security_group_id,
            description=f"Allow {name} to mount EFS",
            opts=pulumi.ResourceOptions(parent=self),
        )
