"""Container bundling for Lambda function code.

Runs a build command inside a Docker image with the source directory
mounted at ``/asset-input`` and collects whatever the command writes to
``/asset-output``. Outputs are staged under a directory keyed by a
fingerprint of the sources and the bundling options, so an unchanged
function is not rebuilt on every ``pulumi up``.
"""

import enum
import fnmatch
import hashlib
import json
import logging
import shutil
import subprocess
from dataclasses import asdict, dataclass, replace
from pathlib import Path

import pulumi

logger = logging.getLogger(__name__)

INPUT_DIR = "/asset-input"
OUTPUT_DIR = "/asset-output"

# Build output written back into the mounted sources by Maven, and the
# staging directory itself
DEFAULT_EXCLUDE = ("target", ".bundle")


class OutputType(str, enum.Enum):
    """How the bundle output directory becomes a Lambda archive."""

    # Output holds a single .jar/.zip that is uploaded as is
    ARCHIVED = "archived"
    # Output directory is zipped as a whole
    NOT_ARCHIVED = "not_archived"


@dataclass(frozen=True)
class DockerVolume:
    """A host path mounted into the build container."""

    host_path: str
    container_path: str


@dataclass(frozen=True)
class BundlingOptions:
    """Build container settings shared by one or more functions."""

    image: str
    command: tuple[str, ...] = ()
    volumes: tuple[DockerVolume, ...] = ()
    user: str | None = None
    working_directory: str = INPUT_DIR
    output_type: OutputType = OutputType.ARCHIVED
    environment: tuple[tuple[str, str], ...] = ()
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE

    def with_command(self, *command: str) -> "BundlingOptions":
        """Return a copy of these options running ``command``."""
        return replace(self, command=tuple(command))


def _excluded(relative: Path, patterns: tuple[str, ...]) -> bool:
    return any(
        fnmatch.fnmatch(part, pattern)
        for part in relative.parts
        for pattern in patterns
    )


def fingerprint(source_dir: Path, options: BundlingOptions) -> str:
    """Hash the source tree together with the bundling options.

    Paths with any component matching ``options.exclude`` are left out, so
    artifacts the build writes into the sources do not change the key.
    """
    digest = hashlib.sha256()
    digest.update(json.dumps(asdict(options), sort_keys=True, default=str).encode())

    for path in sorted(source_dir.rglob("*")):
        if not path.is_file():
            continue
        if _excluded(path.relative_to(source_dir), options.exclude):
            continue
        digest.update(path.relative_to(source_dir).as_posix().encode())
        digest.update(b"\0")
        digest.update(path.read_bytes())

    return digest.hexdigest()


def docker_run_args(
    source_dir: Path, output_dir: Path, options: BundlingOptions
) -> list[str]:
    """Build the ``docker run`` argument list for one bundling run."""
    args = ["docker", "run", "--rm"]
    if options.user:
        args += ["-u", options.user]

    volumes = [
        DockerVolume(str(source_dir), INPUT_DIR),
        DockerVolume(str(output_dir), OUTPUT_DIR),
        *options.volumes,
    ]
    for volume in volumes:
        args += ["-v", f"{volume.host_path}:{volume.container_path}:delegated"]

    for key, value in options.environment:
        args += ["--env", f"{key}={value}"]

    args += ["-w", options.working_directory, options.image, *options.command]
    return args


def bundle(
    source_dir: str | Path,
    options: BundlingOptions,
    bundle_dir: str | Path = ".bundle",
) -> Path:
    """Run the build container and return the staged output.

    Returns the single archive file for ``OutputType.ARCHIVED`` and the
    output directory for ``OutputType.NOT_ARCHIVED``.

    Raises:
        subprocess.CalledProcessError: The build command failed.
        ValueError: An archived bundle did not produce exactly one file.
    """
    source = Path(source_dir).expanduser().resolve()
    key = fingerprint(source, options)
    output_dir = (Path(bundle_dir) / f"asset.{key}").resolve()

    if output_dir.is_dir() and any(output_dir.iterdir()):
        logger.info(f"Reusing bundled asset {output_dir.name}")
        return _collect(output_dir, options.output_type)

    output_dir.mkdir(parents=True, exist_ok=True)
    args = docker_run_args(source, output_dir, options)
    logger.info(f"Bundling {source} with {options.image}")

    try:
        subprocess.run(args, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"Bundling failed with exit code {e.returncode}: {e.stderr}")
        shutil.rmtree(output_dir, ignore_errors=True)
        raise

    try:
        result = _collect(output_dir, options.output_type)
    except ValueError:
        shutil.rmtree(output_dir, ignore_errors=True)
        raise

    logger.info(f"Bundled asset staged at {result}")
    return result


def _collect(output_dir: Path, output_type: OutputType) -> Path:
    if output_type is OutputType.NOT_ARCHIVED:
        return output_dir

    files = list(output_dir.iterdir())
    if len(files) != 1 or not files[0].is_file():
        raise ValueError(
            f"Bundling output {output_dir} must contain exactly one archive "
            f"file, found {len(files)} entries"
        )
    return files[0]


def code_from_asset(
    source_dir: str | Path,
    options: BundlingOptions,
    bundle_dir: str | Path = ".bundle",
    skip: bool = False,
) -> pulumi.Archive:
    """Bundle ``source_dir`` and wrap the result as Lambda code.

    With ``skip`` no container runs and an empty placeholder archive is
    returned, for previews on machines without Docker.
    """
    if skip:
        logger.info(f"Skipping bundling of {source_dir}")
        return pulumi.AssetArchive({})

    return pulumi.FileArchive(str(bundle(source_dir, options, bundle_dir)))
