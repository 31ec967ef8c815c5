"""Unit tests for the EFS file system component."""

from unittest.mock import patch

import pulumi_aws as aws
import pytest

from components.file_system import NFS_PORT, FileSystemComponent

FILE_SYSTEM = "aws:efs/fileSystem:FileSystem"
MOUNT_TARGET = "aws:efs/mountTarget:MountTarget"
ACCESS_POINT = "aws:efs/accessPoint:AccessPoint"


def _file_system(retain: bool = False) -> FileSystemComponent:
    return FileSystemComponent(
        "dev-fs",
        environment="dev",
        vpc_id="vpc-123",
        subnet_ids=["subnet-a", "subnet-b"],
        retain=retain,
        tags={"Project": "firehol-blacklist"},
    )


def test_one_mount_target_per_subnet(mocks, declare):
    """Each private subnet gets a mount target in the EFS security group."""
    declare(_file_system)

    assert len(mocks.of_type(FILE_SYSTEM)) == 1
    targets = mocks.of_type(MOUNT_TARGET)
    assert sorted(t.inputs["subnetId"] for t in targets) == ["subnet-a", "subnet-b"]
    for target in targets:
        assert target.inputs["fileSystemId"] == "dev-fs-efs-id"
        assert target.inputs["securityGroups"] == ["dev-fs-sg-id"]


def test_file_system_is_encrypted_and_tagged(mocks, declare):
    declare(_file_system)

    fs = mocks.named("dev-fs-efs")
    assert fs.inputs["encrypted"] is True
    assert fs.inputs["creationToken"] == "firehol-blacklist-dev"
    assert fs.inputs["tags"] == {"Project": "firehol-blacklist", "Name": "dev-fs-efs"}


def test_access_point_posix_user_and_acl(mocks, declare):
    """The access point exports /export/lambda as uid/gid 1001 with 750."""

    def build():
        fs = _file_system()
        fs.add_access_point("lambda-ap", path="/export/lambda")
        return fs

    fs = declare(build)

    assert "lambda-ap" in fs.access_points
    access_points = mocks.of_type(ACCESS_POINT)
    assert len(access_points) == 1
    inputs = access_points[0].inputs
    assert inputs["fileSystemId"] == "dev-fs-efs-id"
    assert inputs["posixUser"]["uid"] == 1001
    assert inputs["posixUser"]["gid"] == 1001
    assert inputs["rootDirectory"]["path"] == "/export/lambda"
    creation_info = inputs["rootDirectory"]["creationInfo"]
    assert creation_info["ownerUid"] == 1001
    assert creation_info["ownerGid"] == 1001
    assert creation_info["permissions"] == "750"


def test_allow_nfs_from_adds_ingress_rule(mocks, declare):
    def build():
        fs = _file_system()
        fs.allow_nfs_from("blacklist", "sg-lambda")

    declare(build)

    rule = mocks.named("dev-fs-nfs-from-blacklist")
    assert rule.inputs["type"] == "ingress"
    assert rule.inputs["fromPort"] == NFS_PORT
    assert rule.inputs["toPort"] == NFS_PORT
    assert rule.inputs["protocol"] == "tcp"
    assert rule.inputs["securityGroupId"] == "dev-fs-sg-id"
    assert rule.inputs["sourceSecurityGroupId"] == "sg-lambda"


@pytest.mark.parametrize("retain", [False, True])
def test_removal_policy(mocks, declare, retain):
    """The file system is deleted with the stack unless retained."""
    with patch.object(
        aws.efs, "FileSystem", wraps=aws.efs.FileSystem
    ) as file_system_cls:
        declare(lambda: _file_system(retain=retain))

    file_system_cls.assert_called_once()
    opts = file_system_cls.call_args.kwargs["opts"]
    assert opts.retain_on_delete is retain
