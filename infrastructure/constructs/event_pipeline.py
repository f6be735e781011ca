"""
Event pipeline: orders change stream -> SQS -> order status monitor Lambda.

The database publishes row changes for the orders table to the queue; the
monitor triggers ticket generation for orders that became paid/completed.
"""

from typing import Dict

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_lambda_event_sources as event_sources,
    aws_logs as logs,
    aws_sqs as sqs,
)
from constructs import Construct


class EventPipelineConstruct(Construct):
    """Wire order change notifications to the fulfillment monitor."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        shared_env: Dict[str, str],
        timeout_seconds: int = 120,
        batch_size: int = 5,
        max_receive_count: int = 5,
    ) -> None:
        super().__init__(scope, construct_id)

        self.dead_letter_queue = sqs.Queue(
            self,
            "OrderChangesDlq",
            retention_period=Duration.days(14),
            enforce_ssl=True,
        )

        # Visibility timeout must exceed the consumer timeout.
        self.order_changes_queue = sqs.Queue(
            self,
            "OrderChanges",
            visibility_timeout=Duration.seconds(timeout_seconds * 6),
            enforce_ssl=True,
            dead_letter_queue=sqs.DeadLetterQueue(
                max_receive_count=max_receive_count, queue=self.dead_letter_queue
            ),
        )

        self.monitor_lambda = _lambda.Function(
            self,
            "OrderStatusMonitor",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.order_status_monitor.lambda_handler",
            code=code,
            timeout=Duration.seconds(timeout_seconds),
            memory_size=512,
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            environment=shared_env,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        self.monitor_lambda.add_event_source(
            event_sources.SqsEventSource(
                self.order_changes_queue,
                batch_size=batch_size,
                report_batch_item_failures=True,
            )
        )
