"""Components package for Pulumi infrastructure.

- VPCComponent: Network placement
- FileSystemComponent: EFS file system, mount targets and access points
- PackagedFunctionComponent: Container-bundled Lambda with an EFS mount
- HttpApiComponent: API Gateway HTTP API with Lambda proxy routes
"""

from components.file_system import FileSystemComponent
from components.function import MOUNT_PATH, PackagedFunctionComponent
from components.http_api import HttpApiComponent
from components.vpc import VPCComponent

__all__ = [
    "MOUNT_PATH",
    "FileSystemComponent",
    "HttpApiComponent",
    "PackagedFunctionComponent",
    "VPCComponent",
]
