"""HTTP API Component using API Gateway (HTTP API v2)."""

import pulumi
import pulumi_aws as aws


class HttpApiComponent(pulumi.ComponentResource):
    """API Gateway HTTP API with a ``$default`` auto-deploying stage.

    Routes are added with :meth:`add_route`, each proxying to a Lambda
    function.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        api_name: str = "sample-api",
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("blacklist:api:HttpApi", name, None, opts)

        self.tags = tags or {}
        self._name = name

        self.api = aws.apigatewayv2.Api(
            f"{name}-api",
            name=api_name,
            protocol_type="HTTP",
            description=f"Firehol blacklist lookups ({environment})",
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.stage = aws.apigatewayv2.Stage(
            f"{name}-stage",
            api_id=self.api.id,
            name="$default",
            auto_deploy=True,
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.integrations: dict[str, aws.apigatewayv2.Integration] = {}
        self.routes: list[aws.apigatewayv2.Route] = []

        self.api_endpoint = self.api.api_endpoint

        self.register_outputs(
            {
                "api_endpoint": self.api.api_endpoint,
                "api_id": self.api.id,
            }
        )

    def add_route(
        self,
        path: str,
        methods: list[str],
        function: aws.lambda_.Function,
        payload_format_version: str = "2.0",
    ) -> list[aws.apigatewayv2.Route]:
        """Proxy ``methods`` on ``path`` to ``function``.

        One integration and invoke permission is created per path; each
        method gets its own route.
        """
        slug = path.strip("/").replace("/", "-").replace("{", "").replace("}", "")
        slug = slug or "root"

        integration = aws.apigatewayv2.Integration(
            f"{self._name}-{slug}-integration",
            api_id=self.api.id,
            integration_type="AWS_PROXY",
            integration_uri=function.arn,
            integration_method="POST",
            payload_format_version=payload_format_version,
            opts=pulumi.ResourceOptions(parent=self),
        )
        self.integrations[path] = integration

        aws.lambda_.Permission(
            f"{self._name}-{slug}-permission",
            action="lambda:InvokeFunction",
            function=function.name,
            principal="apigateway.amazonaws.com",
            source_arn=pulumi.Output.concat(self.api.execution_arn, "/*/*", path),
            opts=pulumi.ResourceOptions(parent=self),
        )

        routes = []
        for method in methods:
            route = aws.apigatewayv2.Route(
                f"{self._name}-{slug}-{method.lower()}",
                api_id=self.api.id,
                route_key=f"{method.upper()} {path}",
                target=pulumi.Output.concat("integrations/", integration.id),
                opts=pulumi.ResourceOptions(parent=self),
            )
            routes.append(route)

        self.routes.extend(routes)
        return routes
