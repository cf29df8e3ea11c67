"""
AWS Generation Templates

Responsibility:
- Dependency templates: network (VPC), subnet (subnet + internet egress + routing),
  security-boundary (security group)
- One primary template per AWS catalog service

Local names follow BuildContext.name(); resource addresses stay unique because
each role is used at most once per resource type.
"""

import json

from contracts import INTERNET_CIDR, NETWORK_CIDR, ingress_rules
from models import Block
from service_templates import dependency_template, primary_template


PRIMARY_SUBNET_CIDR = "10.0.1.0/24"
SECONDARY_SUBNET_CIDR = "10.0.2.0/24"

LAMBDA_BASIC_EXECUTION_POLICY = "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"


def _assume_role_policy(service_principal: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Action": "sts:AssumeRole",
            "Effect": "Allow",
            "Principal": {"Service": service_principal},
        }],
    })


# ============================================================================
# DEPENDENCY TEMPLATES
# ============================================================================

@dependency_template("aws", "network")
def aws_network(ctx):
    ctx.add("aws_vpc", {
        "cidr_block": NETWORK_CIDR,
        "enable_dns_hostnames": True,
        "enable_dns_support": True,
        "tags": ctx.tags("vpc"),
    }, kind="network")


@dependency_template("aws", "subnet")
def aws_subnet(ctx):
    """Public subnet with its internet gateway and default route."""
    ctx.add("aws_availability_zones", {"state": "available"}, mode="data", kind="zones")

    ctx.add("aws_subnet", {
        "vpc_id": ctx.ref("network"),
        "cidr_block": PRIMARY_SUBNET_CIDR,
        "availability_zone": ctx.ref("zones", "names[0]"),
        "map_public_ip_on_launch": True,
        "tags": ctx.tags("subnet"),
    }, kind="subnet")

    ctx.add("aws_internet_gateway", {
        "vpc_id": ctx.ref("network"),
        "tags": ctx.tags("igw"),
    }, kind="gateway")

    ctx.add("aws_route_table", {
        "vpc_id": ctx.ref("network"),
        "route": Block({
            "cidr_block": INTERNET_CIDR,
            "gateway_id": ctx.ref("gateway"),
        }),
        "tags": ctx.tags("rt"),
    }, kind="route-table")

    ctx.add("aws_route_table_association", {
        "subnet_id": ctx.ref("subnet"),
        "route_table_id": ctx.ref("route-table"),
    })


@dependency_template("aws", "security-boundary")
def aws_security_group(ctx):
    ingress = [
        Block({
            "description": rule["name"],
            "from_port": rule["port"],
            "to_port": rule["port"],
            "protocol": "tcp",
            "cidr_blocks": [rule["cidr"]],
        })
        for rule in ingress_rules(ctx.provider_id, ctx.service.id, ctx.values)
    ]

    ctx.add("aws_security_group", {
        "name": ctx.label("sg"),
        "description": f"Security group for {ctx.display_name}",
        "vpc_id": ctx.ref("network"),
        "ingress": ingress or None,
        "egress": Block({
            "from_port": 0,
            "to_port": 0,
            "protocol": "-1",
            "cidr_blocks": [INTERNET_CIDR],
        }),
        "tags": ctx.tags("sg"),
    }, kind="security-boundary")


def _secondary_subnet(ctx):
    """Second subnet in another zone, for services that must span two zones."""
    subnet = ctx.add("aws_subnet", {
        "vpc_id": ctx.ref("network"),
        "cidr_block": SECONDARY_SUBNET_CIDR,
        "availability_zone": ctx.ref("zones", "names[1]"),
        "tags": ctx.tags("subnet-2"),
    }, role="secondary", graph_role="dependency")

    ctx.add("aws_route_table_association", {
        "subnet_id": subnet.ref(),
        "route_table_id": ctx.ref("route-table"),
    }, role="secondary", graph_role="dependency")

    return subnet


# ============================================================================
# PRIMARY TEMPLATES
# ============================================================================

@primary_template("aws", "ec2")
def aws_ec2(ctx):
    instance = ctx.add("aws_instance", {
        "ami": ctx.value("ami_id"),
        "instance_type": ctx.value("instance_type"),
        "key_name": ctx.value("key_pair"),
        "subnet_id": ctx.ref("subnet"),
        "vpc_security_group_ids": [ctx.ref("security-boundary")],
        "monitoring": ctx.flag("monitoring"),
        "ebs_optimized": ctx.value("ebs_optimized"),
        "root_block_device": Block({
            "volume_size": ctx.number("root_volume_size", 20),
            "volume_type": ctx.value("root_volume_type"),
            "encrypted": True,
        }),
        "tags": ctx.tags(),
    })

    ctx.output("instance_id", instance.ref("id"), "ID of the EC2 instance")

    if ctx.flag("elastic_ip"):
        eip = ctx.add("aws_eip", {
            "instance": instance.ref("id"),
            "domain": "vpc",
            "tags": ctx.tags("eip"),
        })
        ctx.output("public_ip", eip.ref("public_ip"), "Elastic IP of the instance")
    else:
        ctx.output("public_ip", instance.ref("public_ip"), "Public IP of the instance")


@primary_template("aws", "s3")
def aws_s3(ctx):
    object_lock = ctx.flag("object_lock")

    bucket = ctx.add("aws_s3_bucket", {
        "bucket": ctx.value("bucket_name"),
        "object_lock_enabled": True if object_lock else None,
        "tags": ctx.tags(),
    })

    if ctx.flag("versioning"):
        ctx.add("aws_s3_bucket_versioning", {
            "bucket": bucket.ref(),
            "versioning_configuration": Block({"status": "Enabled"}),
        })

    if ctx.value("public_access_block") == "Block all public access":
        ctx.add("aws_s3_bucket_public_access_block", {
            "bucket": bucket.ref(),
            "block_public_acls": True,
            "block_public_policy": True,
            "ignore_public_acls": True,
            "restrict_public_buckets": True,
        })

    ctx.add("aws_s3_bucket_server_side_encryption_configuration", {
        "bucket": bucket.ref(),
        "rule": Block({
            "apply_server_side_encryption_by_default": Block({
                "sse_algorithm": ctx.value("encryption"),
            }),
        }),
    })

    if object_lock:
        ctx.add("aws_s3_bucket_object_lock_configuration", {
            "bucket": bucket.ref(),
            "rule": Block({
                "default_retention": Block({"mode": "GOVERNANCE", "days": 30}),
            }),
        })

    if ctx.flag("lifecycle_policy"):
        ctx.add("aws_s3_bucket_lifecycle_configuration", {
            "bucket": bucket.ref(),
            "rule": Block({
                "id": "transition-to-cheaper-storage",
                "status": "Enabled",
                "filter": Block({}),
                "transition": [
                    Block({"days": 30, "storage_class": "STANDARD_IA"}),
                    Block({"days": 90, "storage_class": "GLACIER"}),
                ],
            }),
        })

    ctx.output("bucket_name", bucket.ref("id"), "Name of the S3 bucket")
    ctx.output("bucket_arn", bucket.ref("arn"), "ARN of the S3 bucket")


@primary_template("aws", "rds")
def aws_rds(ctx):
    secondary = _secondary_subnet(ctx)

    subnet_group = ctx.add("aws_db_subnet_group", {
        "name": ctx.label("subnet-group").lower(),
        "subnet_ids": [ctx.ref("subnet"), secondary.ref()],
        "tags": ctx.tags("subnet-group"),
    }, graph_role="dependency")

    database = ctx.add("aws_db_instance", {
        "identifier": ctx.value("db_identifier"),
        "engine": ctx.value("engine"),
        "engine_version": ctx.value("engine_version"),
        "instance_class": ctx.value("instance_class"),
        "allocated_storage": ctx.number("allocated_storage", 20),
        "storage_type": ctx.value("storage_type"),
        "storage_encrypted": ctx.value("storage_encrypted"),
        "multi_az": ctx.value("multi_az"),
        "backup_retention_period": ctx.number("backup_retention", 7),
        "username": ctx.value("username"),
        "password": ctx.value("password"),
        "db_subnet_group_name": subnet_group.ref("name"),
        "vpc_security_group_ids": [ctx.ref("security-boundary")],
        "publicly_accessible": False,
        "skip_final_snapshot": True,
        "tags": ctx.tags(),
    })

    ctx.output("db_endpoint", database.ref("endpoint"), "Connection endpoint of the database")
    ctx.output("db_port", database.ref("port"), "Port of the database")


@primary_template("aws", "lambda")
def aws_lambda(ctx):
    role = ctx.add("aws_iam_role", {
        "name": ctx.label("role"),
        "assume_role_policy": _assume_role_policy("lambda.amazonaws.com"),
        "tags": ctx.tags("role"),
    }, role="exec", graph_role="dependency")

    ctx.add("aws_iam_role_policy_attachment", {
        "role": role.ref("name"),
        "policy_arn": LAMBDA_BASIC_EXECUTION_POLICY,
    }, role="exec", graph_role="dependency")

    dead_letter = None
    if ctx.flag("dead_letter_queue"):
        queue = ctx.add("aws_sqs_queue", {
            "name": ctx.label("dlq"),
            "tags": ctx.tags("dlq"),
        }, role="dlq", graph_role="dependency")
        dead_letter = Block({"target_arn": queue.ref("arn")})

    function = ctx.add("aws_lambda_function", {
        "function_name": ctx.value("function_name"),
        "role": role.ref("arn"),
        "handler": ctx.value("handler"),
        "runtime": ctx.value("runtime"),
        "memory_size": ctx.number("memory_size", 128),
        "timeout": ctx.number("timeout", 3),
        "filename": "lambda_function.zip",
        "dead_letter_config": dead_letter,
        "tags": ctx.tags(),
    })

    ctx.output("function_arn", function.ref("arn"), "ARN of the Lambda function")


@primary_template("aws", "vpc")
def aws_vpc(ctx):
    vpc = ctx.add("aws_vpc", {
        "cidr_block": ctx.value("cidr_block"),
        "enable_dns_hostnames": ctx.value("enable_dns_hostnames"),
        "enable_dns_support": ctx.value("enable_dns_support"),
        "instance_tenancy": ctx.value("tenancy"),
        "tags": ctx.tags(),
    })

    ctx.output("vpc_id", vpc.ref("id"), "ID of the VPC")


@primary_template("aws", "dynamodb")
def aws_dynamodb(ctx):
    provisioned = ctx.value("billing_mode") == "PROVISIONED"

    table = ctx.add("aws_dynamodb_table", {
        "name": ctx.value("table_name"),
        "billing_mode": ctx.value("billing_mode"),
        "read_capacity": 5 if provisioned else None,
        "write_capacity": 5 if provisioned else None,
        "hash_key": ctx.value("hash_key"),
        "attribute": Block({
            "name": ctx.value("hash_key"),
            "type": ctx.value("hash_key_type"),
        }),
        "point_in_time_recovery": Block({"enabled": True}) if ctx.flag("point_in_time_recovery") else None,
        "tags": ctx.tags(),
    })

    ctx.output("table_arn", table.ref("arn"), "ARN of the DynamoDB table")


@primary_template("aws", "alb")
def aws_alb(ctx):
    secondary = _secondary_subnet(ctx)

    balancer = ctx.add("aws_lb", {
        "name": ctx.value("alb_name"),
        "internal": ctx.value("internal"),
        "load_balancer_type": "application",
        "security_groups": [ctx.ref("security-boundary")],
        "subnets": [ctx.ref("subnet"), secondary.ref()],
        "tags": ctx.tags(),
    })

    target_group = ctx.add("aws_lb_target_group", {
        "name": ctx.label("tg"),
        "port": 80,
        "protocol": "HTTP",
        "vpc_id": ctx.ref("network"),
        "health_check": Block({"path": "/", "matcher": "200"}),
        "tags": ctx.tags("tg"),
    })

    ctx.add("aws_lb_listener", {
        "load_balancer_arn": balancer.ref("arn"),
        "port": 80,
        "protocol": "HTTP",
        "default_action": Block({
            "type": "forward",
            "target_group_arn": target_group.ref("arn"),
        }),
    })

    ctx.output("alb_dns_name", balancer.ref("dns_name"), "DNS name of the load balancer")


@primary_template("aws", "api_gateway")
def aws_api_gateway(ctx):
    websocket = ctx.value("protocol_type") == "WEBSOCKET"

    api = ctx.add("aws_apigatewayv2_api", {
        "name": ctx.value("api_name"),
        "protocol_type": ctx.value("protocol_type"),
        "route_selection_expression": "$request.body.action" if websocket else None,
        "tags": ctx.tags(),
    })

    stage = ctx.add("aws_apigatewayv2_stage", {
        "api_id": api.ref("id"),
        "name": "production" if websocket else "$default",
        "auto_deploy": True,
    })

    ctx.output("api_endpoint", api.ref("api_endpoint"), "Endpoint of the API")
    ctx.output("stage_invoke_url", stage.ref("invoke_url"), "Invoke URL of the stage")


@primary_template("aws", "sns")
def aws_sns(ctx):
    fifo = ctx.flag("fifo_topic")
    name = ctx.value("topic_name")

    topic = ctx.add("aws_sns_topic", {
        "name": f"{name}.fifo" if fifo and not name.endswith(".fifo") else name,
        "fifo_topic": True if fifo else None,
        "tags": ctx.tags(),
    })

    email = ctx.value("email_subscription")
    if email:
        ctx.add("aws_sns_topic_subscription", {
            "topic_arn": topic.ref("arn"),
            "protocol": "email",
            "endpoint": email,
        })

    ctx.output("topic_arn", topic.ref("arn"), "ARN of the SNS topic")


@primary_template("aws", "sqs")
def aws_sqs(ctx):
    fifo = ctx.flag("fifo_queue")
    name = ctx.value("queue_name")

    queue = ctx.add("aws_sqs_queue", {
        "name": f"{name}.fifo" if fifo and not name.endswith(".fifo") else name,
        "fifo_queue": True if fifo else None,
        "message_retention_seconds": ctx.number("message_retention_seconds", 345600),
        "tags": ctx.tags(),
    })

    ctx.output("queue_url", queue.ref("url"), "URL of the SQS queue")
    ctx.output("queue_arn", queue.ref("arn"), "ARN of the SQS queue")


@primary_template("aws", "iam_role")
def aws_iam_role(ctx):
    role = ctx.add("aws_iam_role", {
        "name": ctx.value("role_name"),
        "assume_role_policy": _assume_role_policy(ctx.value("trusted_service")),
        "tags": ctx.tags(),
    })

    policy_arn = ctx.value("managed_policy_arn")
    if policy_arn:
        ctx.add("aws_iam_role_policy_attachment", {
            "role": role.ref("name"),
            "policy_arn": policy_arn,
        })

    ctx.output("role_arn", role.ref("arn"), "ARN of the IAM role")


@primary_template("aws", "cloudwatch")
def aws_cloudwatch(ctx):
    log_group = ctx.add("aws_cloudwatch_log_group", {
        "name": ctx.value("log_group_name"),
        "retention_in_days": ctx.number("retention_in_days", 14),
        "tags": ctx.tags(),
    })

    ctx.output("log_group_arn", log_group.ref("arn"), "ARN of the log group")
