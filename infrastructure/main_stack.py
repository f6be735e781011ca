"""
Main CDK Stack for the ticket fulfillment pipeline.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct, bundled_lambda_code
from infrastructure.constructs.event_pipeline import EventPipelineConstruct
from infrastructure.config.settings import Settings


class TicketFulfillmentStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "ticket-fulfillment")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "events-ticketing")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer (VPC, Postgres, ticket image bucket).
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )

        shared_env = {
            "ENVIRONMENT": settings.environment,
            "DB_SECRET_ARN": data_construct.db_secret.secret_arn,
            "TICKETS_BUCKET": data_construct.tickets_bucket.bucket_name,
            "EMAIL_SENDER": settings.email_sender,
            "BRAND_NAME": settings.brand_name,
            "SUPPORT_URL": settings.support_url,
            "FULFILLMENT_MAX_CONCURRENCY": str(settings.fulfillment_max_concurrency),
        }
        code = bundled_lambda_code()

        # 2) API layer (single Lambda) for admin triggers.
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            vpc=data_construct.vpc,
            code=code,
            shared_env=shared_env,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # 3) Order change feed -> status monitor.
        event_construct = EventPipelineConstruct(
            self,
            "EventPipeline",
            environment=settings.environment,
            vpc=data_construct.vpc,
            code=code,
            shared_env=shared_env,
            timeout_seconds=settings.monitor_timeout_seconds,
            batch_size=settings.order_changes_batch_size,
            max_receive_count=settings.order_changes_max_receive_count,
        )

        ses_policy = iam.PolicyStatement(
            actions=["ses:SendEmail", "ses:SendRawEmail"],
            resources=["*"],
        )

        # Both entry points run the same orchestrator and need the same grants.
        for fn in (api_construct.main_lambda, event_construct.monitor_lambda):
            data_construct.db_secret.grant_read(fn)
            data_construct.tickets_bucket.grant_put(fn, "tickets/*")
            fn.add_to_role_policy(ses_policy)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "TicketsBucket", value=data_construct.tickets_bucket.bucket_name)
        CfnOutput(self, "OrderChangesQueueUrl", value=event_construct.order_changes_queue.queue_url)
        CfnOutput(self, "DbSecretArn", value=data_construct.db_secret.secret_arn)
