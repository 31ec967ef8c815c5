"""Unit tests for the packaged function component."""

import json

import pulumi

from components.file_system import FileSystemComponent
from components.function import MOUNT_PATH, PackagedFunctionComponent

FUNCTION = "aws:lambda/function:Function"


def _function(**overrides):
    fs = FileSystemComponent(
        "dev-fs",
        environment="dev",
        vpc_id="vpc-123",
        subnet_ids=["subnet-a", "subnet-b"],
    )
    access_point = fs.add_access_point("lambda-ap", path="/export/lambda")
    kwargs = {
        "environment": "dev",
        "code": pulumi.AssetArchive({}),
        "handler": "com.devilelephant.blacklist.BlacklistFn",
        "vpc_id": "vpc-123",
        "subnet_ids": ["subnet-a", "subnet-b"],
        "file_system": fs,
        "access_point": access_point,
        **overrides,
    }
    return PackagedFunctionComponent("dev-blacklist", **kwargs)


class TestFunction:
    """Tests for the Lambda function declaration."""

    def test_mount_path_is_under_mnt(self):
        assert MOUNT_PATH == "/mnt/msg"
        assert MOUNT_PATH.startswith("/mnt")

    def test_defaults(self, mocks, declare):
        """Java 11, 512 MB, 30 seconds unless told otherwise."""
        declare(_function)

        functions = mocks.of_type(FUNCTION)
        assert len(functions) == 1
        inputs = functions[0].inputs
        assert inputs["name"] == "dev-blacklist-func"
        assert inputs["runtime"] == "java11"
        assert inputs["handler"] == "com.devilelephant.blacklist.BlacklistFn"
        assert inputs["memorySize"] == 512
        assert inputs["timeout"] == 30

    def test_memory_and_timeout_overrides(self, mocks, declare):
        declare(lambda: _function(memory_size=2048, timeout=300))

        inputs = mocks.of_type(FUNCTION)[0].inputs
        assert inputs["memorySize"] == 2048
        assert inputs["timeout"] == 300

    def test_access_point_mounted(self, mocks, declare):
        declare(_function)

        inputs = mocks.of_type(FUNCTION)[0].inputs
        fs_config = inputs["fileSystemConfig"]
        assert fs_config["arn"].endswith(":dev-fs-lambda-ap")
        assert fs_config["localMountPath"] == MOUNT_PATH
        assert inputs["environment"]["variables"]["MOUNT_PATH"] == MOUNT_PATH

    def test_vpc_placement(self, mocks, declare):
        declare(_function)

        vpc_config = mocks.of_type(FUNCTION)[0].inputs["vpcConfig"]
        assert vpc_config["subnetIds"] == ["subnet-a", "subnet-b"]
        assert vpc_config["securityGroupIds"] == ["dev-blacklist-sg-id"]


class TestSupportingResources:
    """Tests for logging, IAM and network access around the function."""

    def test_log_group_retention(self, mocks, declare):
        declare(lambda: _function(log_retention_days=7))

        log_group = mocks.named("dev-blacklist-logs")
        assert log_group.inputs["name"] == "/aws/lambda/dev-blacklist-func"
        assert log_group.inputs["retentionInDays"] == 7

    def test_nfs_ingress_from_function(self, mocks, declare):
        declare(_function)

        rule = mocks.named("dev-fs-nfs-from-dev-blacklist")
        assert rule.inputs["sourceSecurityGroupId"] == "dev-blacklist-sg-id"
        assert rule.inputs["securityGroupId"] == "dev-fs-sg-id"

    def test_efs_client_policy_scoped_to_access_point(self, mocks, declare):
        declare(_function)

        policy = json.loads(mocks.named("dev-blacklist-efs-policy").inputs["policy"])
        statement = policy["Statement"][0]
        assert statement["Action"] == [
            "elasticfilesystem:ClientMount",
            "elasticfilesystem:ClientWrite",
        ]
        assert statement["Resource"].endswith(":dev-fs-efs")
        access_point_arn = statement["Condition"]["StringEquals"][
            "elasticfilesystem:AccessPointArn"
        ]
        assert access_point_arn.endswith(":dev-fs-lambda-ap")

    def test_vpc_execution_role_attached(self, mocks, declare):
        declare(_function)

        attachment = mocks.named("dev-blacklist-vpc-exec")
        assert attachment.inputs["policyArn"].endswith(
            "service-role/AWSLambdaVPCAccessExecutionRole"
        )
