"""Packaged Function Component - Bundled Lambda with an EFS mount."""

import json

import pulumi
import pulumi_aws as aws

from components.file_system import FileSystemComponent

# Lambda only accepts EFS mount paths under /mnt
MOUNT_PATH = "/mnt/msg"


class PackagedFunctionComponent(pulumi.ComponentResource):
    """Lambda function running bundled code inside the VPC.

    This Lambda:
    - Runs zip/jar code produced by container bundling
    - Is placed in the private subnets with its own security group
    - Mounts an EFS access point at ``mount_path``
    - Logs to a log group with fixed retention
    """

    def __init__(
        self,
        name: str,
        environment: str,
        code: pulumi.Input[pulumi.Archive],
        handler: str,
        vpc_id: pulumi.Input[str],
        subnet_ids: pulumi.Input[list[str]],
        file_system: FileSystemComponent,
        access_point: aws.efs.AccessPoint,
        runtime: str = "java11",
        memory_size: int = 512,
        timeout: int = 30,
        mount_path: str = MOUNT_PATH,
        log_retention_days: int = 7,
        env_vars: dict | None = None,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("blacklist:compute:PackagedFunction", name, None, opts)

        self.tags = tags or {}

        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=vpc_id,
            description=f"Security group for {name} Lambda",
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=["0.0.0.0/0"],
                    description="Allow all outbound traffic",
                )
            ],
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        nfs_rule = file_system.allow_nfs_from(name, self.security_group.id)

        self.role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": "sts:AssumeRole",
                            "Principal": {"Service": "lambda.amazonaws.com"},
                            "Effect": "Allow",
                        }
                    ],
                }
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-vpc-exec",
            role=self.role.name,
            policy_arn="arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole",
            opts=pulumi.ResourceOptions(parent=self),
        )

        efs_policy = aws.iam.Policy(
            f"{name}-efs-policy",
            policy=pulumi.Output.all(
                file_system.file_system.arn, access_point.arn
            ).apply(
                lambda args: json.dumps(
                    {
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": [
                                    "elasticfilesystem:ClientMount",
                                    "elasticfilesystem:ClientWrite",
                                ],
                                "Resource": args[0],
                                "Condition": {
                                    "StringEquals": {
                                        "elasticfilesystem:AccessPointArn": args[1]
                                    }
                                },
                            }
                        ],
                    }
                )
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        efs_attachment = aws.iam.RolePolicyAttachment(
            f"{name}-efs-attach",
            role=self.role.name,
            policy_arn=efs_policy.arn,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=f"/aws/lambda/{name}-func",
            retention_in_days=log_retention_days,
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # Mount targets must be available before Lambda can attach the
        # access point
        self.function = aws.lambda_.Function(
            f"{name}-func",
            name=f"{name}-func",
            runtime=runtime,
            handler=handler,
            code=code,
            role=self.role.arn,
            memory_size=memory_size,
            timeout=timeout,
            vpc_config=aws.lambda_.FunctionVpcConfigArgs(
                subnet_ids=subnet_ids,
                security_group_ids=[self.security_group.id],
            ),
            file_system_config=aws.lambda_.FunctionFileSystemConfigArgs(
                arn=access_point.arn,
                local_mount_path=mount_path,
            ),
            environment=aws.lambda_.FunctionEnvironmentArgs(
                variables={
                    "ENVIRONMENT": environment,
                    "MOUNT_PATH": mount_path,
                    **(env_vars or {}),
                }
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[
                    self.log_group,
                    nfs_rule,
                    efs_attachment,
                    *file_system.mount_targets,
                ],
            ),
        )

        self.register_outputs(
            {
                "function_arn": self.function.arn,
                "function_name": self.function.name,
            }
        )
