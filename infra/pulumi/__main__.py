"""Firehol Blacklist Infrastructure - Main Entry Point.

Declares the AWS resources for the blacklist service using Pulumi.

Architecture:
- Network: VPC across two availability zones
- Storage: EFS file system + POSIX access point, shared by both functions
- Blacklist: Java Lambda answering lookups from the shared data
- Firehol Updater: Java Lambda refreshing the shared data
- API: API Gateway HTTP API proxying GET /blacklist
"""

import logging

from settings import load_settings
from stack import create_stack, export_outputs

# Surface bundling progress in `pulumi up` diagnostics
logging.basicConfig(level=logging.INFO)

settings = load_settings()
stack = create_stack(settings)
export_outputs(stack)
