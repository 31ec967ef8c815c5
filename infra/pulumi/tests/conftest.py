"""Pytest configuration and fixtures.

Installs Pulumi mocks BEFORE any resources are declared, so components can
be constructed without an engine or AWS credentials. Every registered
resource is recorded for structural assertions.
"""

import pulumi
import pytest

AVAILABILITY_ZONES = ["us-east-1a", "us-east-1b", "us-east-1c"]


class InfraMocks(pulumi.runtime.Mocks):
    """Echo inputs back as outputs and fill in the computed attributes."""

    def __init__(self):
        self.resources: list[pulumi.runtime.MockResourceArgs] = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        self.resources.append(args)
        outputs = {**args.inputs, "arn": f"arn:aws:mock:us-east-1:123456789012:{args.name}"}
        if args.typ == "aws:apigatewayv2/api:Api":
            outputs["apiEndpoint"] = (
                f"https://{args.name}.execute-api.us-east-1.amazonaws.com"
            )
            outputs["executionArn"] = (
                f"arn:aws:execute-api:us-east-1:123456789012:{args.name}"
            )
        return [f"{args.name}-id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "aws:index/getAvailabilityZones:getAvailabilityZones":
            return {
                "names": AVAILABILITY_ZONES,
                "zoneIds": ["use1-az1", "use1-az2", "use1-az4"],
                "id": "us-east-1",
            }
        return {}

    def of_type(self, typ: str) -> list[pulumi.runtime.MockResourceArgs]:
        return [r for r in self.resources if r.typ == typ]

    def named(self, name: str) -> pulumi.runtime.MockResourceArgs:
        matches = [r for r in self.resources if r.name == name]
        assert len(matches) == 1, f"expected one resource named {name}"
        return matches[0]


MOCKS = InfraMocks()
pulumi.runtime.set_mocks(MOCKS, project="firehol-blacklist", stack="dev", preview=False)


@pytest.fixture
def mocks():
    """The shared mocks with the resource log cleared."""
    MOCKS.resources.clear()
    yield MOCKS
    MOCKS.resources.clear()


@pytest.fixture
def declare():
    """Run a declaration under the mock runtime and wait for registration.

    Returns whatever the callable returns, once every resource it declared
    has reached the mocks.
    """

    def _declare(fn):
        result = {}

        @pulumi.runtime.test
        def run():
            result["value"] = fn()

        run()
        return result["value"]

    return _declare
