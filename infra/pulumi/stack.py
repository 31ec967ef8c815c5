"""Resource graph for the Firehol blacklist service.

Network -> EFS + access point -> bundled Lambdas -> HTTP API.
"""

import os
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from components.bundling import BundlingOptions, DockerVolume, code_from_asset
from components.file_system import FileSystemComponent
from components.function import MOUNT_PATH, PackagedFunctionComponent
from components.http_api import HttpApiComponent
from components.vpc import VPCComponent
from settings import BLACKLIST_FUNCTION, StackSettings


@dataclass
class BlacklistStack:
    vpc: VPCComponent
    file_system: FileSystemComponent
    access_point: aws.efs.AccessPoint
    functions: dict[str, PackagedFunctionComponent]
    http_api: HttpApiComponent


def bundling_options(settings: StackSettings) -> BundlingOptions:
    """Java build container shared by all functions.

    The host Maven repository is mounted so dependencies are not
    downloaded again inside the container.
    """
    return BundlingOptions(
        image=settings.bundling_image,
        volumes=(
            DockerVolume(
                host_path=os.path.expanduser(settings.maven_repository),
                container_path="/root/.m2/",
            ),
        ),
        user="root",
    )


def create_stack(settings: StackSettings) -> BlacklistStack:
    environment = settings.environment
    tags = settings.tags

    # =========================================================================
    # VPC - EFS needs a network to live in
    # =========================================================================
    vpc = VPCComponent(
        f"{environment}-vpc",
        environment=environment,
        cidr_block=settings.vpc_cidr,
        availability_zones=settings.az_count,
        tags=tags,
    )

    # =========================================================================
    # EFS - Shared storage for the blacklist data
    # =========================================================================
    file_system = FileSystemComponent(
        f"{environment}-fs",
        environment=environment,
        vpc_id=vpc.vpc.id,
        subnet_ids=[s.id for s in vpc.private_subnets],
        retain=settings.retain_file_system,
        tags=tags,
    )

    access_point = file_system.add_access_point("lambda-ap", path="/export/lambda")

    # =========================================================================
    # Functions - Bundled Java Lambdas sharing the access point
    # =========================================================================
    base_options = bundling_options(settings)
    functions: dict[str, PackagedFunctionComponent] = {}

    for fn in settings.functions:
        code = code_from_asset(
            settings.source_dir,
            base_options.with_command(*fn.build_command),
            bundle_dir=settings.bundle_dir,
            skip=settings.skip_bundling,
        )
        functions[fn.name] = PackagedFunctionComponent(
            f"{environment}-{fn.name}",
            environment=environment,
            code=code,
            handler=fn.handler,
            vpc_id=vpc.vpc.id,
            subnet_ids=vpc.private_subnet_ids,
            file_system=file_system,
            access_point=access_point,
            memory_size=fn.memory_size,
            timeout=fn.timeout,
            mount_path=MOUNT_PATH,
            log_retention_days=settings.log_retention_days,
            tags=tags,
        )

    # =========================================================================
    # HTTP API - GET /blacklist
    # =========================================================================
    http_api = HttpApiComponent(
        f"{environment}-http",
        environment=environment,
        api_name=settings.api_name,
        tags=tags,
    )
    http_api.add_route(
        "/blacklist",
        methods=["GET"],
        function=functions[BLACKLIST_FUNCTION.name].function,
        payload_format_version="2.0",
    )

    return BlacklistStack(
        vpc=vpc,
        file_system=file_system,
        access_point=access_point,
        functions=functions,
        http_api=http_api,
    )


def export_outputs(stack: BlacklistStack) -> None:
    pulumi.export("vpc_id", stack.vpc.vpc.id)
    pulumi.export("file_system_id", stack.file_system.file_system.id)
    pulumi.export("access_point_id", stack.access_point.id)
    for name, fn in stack.functions.items():
        pulumi.export(f"{name.replace('-', '_')}_function_name", fn.function.name)
    pulumi.export("http_api_url", stack.http_api.api_endpoint)
