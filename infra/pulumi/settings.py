"""Stack settings read from Pulumi configuration."""

from dataclasses import dataclass, field

import pulumi

DEFAULT_BUNDLING_IMAGE = "public.ecr.aws/sam/build-java11"


@dataclass(frozen=True)
class FunctionSettings:
    """Build and runtime settings for one packaged function."""

    name: str
    module: str
    artifact: str
    handler: str
    memory_size: int
    timeout: int

    @property
    def build_command(self) -> tuple[str, ...]:
        """Shell command run in the build container."""
        return (
            "/bin/sh",
            "-c",
            f"cd {self.module} && mvn clean install && "
            f"cp /asset-input/{self.module}/target/{self.artifact} /asset-output/",
        )


BLACKLIST_FUNCTION = FunctionSettings(
    name="blacklist",
    module="Blacklist",
    artifact="blacklist_final.jar",
    handler="com.devilelephant.blacklist.BlacklistFn",
    memory_size=512,
    timeout=30,
)

FIREHOL_UPDATER_FUNCTION = FunctionSettings(
    name="firehol-updater",
    module="FireholUpdater",
    artifact="firehol_final.jar",
    handler="com.devilelephant.fireholupdater.FireholUpdaterFn",
    memory_size=2048,
    timeout=300,  # 5 minutes to download and merge the feeds
)


@dataclass(frozen=True)
class StackSettings:
    """Everything the stack declares that can vary per Pulumi stack."""

    environment: str
    az_count: int = 2
    vpc_cidr: str = "10.0.0.0/16"
    retain_file_system: bool = False
    log_retention_days: int = 7
    api_name: str = "sample-api"
    source_dir: str = "../../software"
    bundle_dir: str = ".bundle"
    bundling_image: str = DEFAULT_BUNDLING_IMAGE
    maven_repository: str = "~/.m2/"
    skip_bundling: bool = False
    functions: tuple[FunctionSettings, ...] = field(
        default=(BLACKLIST_FUNCTION, FIREHOL_UPDATER_FUNCTION)
    )

    @property
    def tags(self) -> dict[str, str]:
        return {
            "Project": "firehol-blacklist",
            "Environment": self.environment,
            "ManagedBy": "pulumi",
        }


def load_settings(
    config: pulumi.Config | None = None, environment: str | None = None
) -> StackSettings:
    """Build :class:`StackSettings` from the project config namespace."""
    config = config or pulumi.Config()
    environment = environment or pulumi.get_stack()

    defaults = StackSettings(environment=environment)

    def _get(key: str, default: str) -> str:
        return config.get(key) or default

    def _get_int(key: str, default: int) -> int:
        value = config.get_int(key)
        return default if value is None else value

    def _get_bool(key: str, default: bool) -> bool:
        value = config.get_bool(key)
        return default if value is None else value

    return StackSettings(
        environment=environment,
        az_count=_get_int("az_count", defaults.az_count),
        vpc_cidr=_get("vpc_cidr", defaults.vpc_cidr),
        retain_file_system=_get_bool(
            "retain_file_system", defaults.retain_file_system
        ),
        log_retention_days=_get_int(
            "log_retention_days", defaults.log_retention_days
        ),
        api_name=_get("api_name", defaults.api_name),
        source_dir=_get("source_dir", defaults.source_dir),
        bundle_dir=_get("bundle_dir", defaults.bundle_dir),
        bundling_image=_get("bundling_image", defaults.bundling_image),
        maven_repository=_get("maven_repository", defaults.maven_repository),
        skip_bundling=_get_bool("skip_bundling", defaults.skip_bundling),
    )
