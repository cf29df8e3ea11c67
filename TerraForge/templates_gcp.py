"""
GCP Generation Templates

Responsibility:
- Dependency templates: network (VPC network), subnet (subnetwork + Cloud NAT egress),
  security-boundary (firewall)
- One primary template per GCP catalog service

GCP resource names must be lowercase with hyphens, so names go through gcp_name().
"""

from contracts import ingress_rules
from models import Block, Interpolation, VariableRef
from service_templates import dependency_template, primary_template


PRIMARY_SUBNET_CIDR = "10.0.1.0/24"

LABELS = {"managed_by": "terraform"}

MEMORY_MB = {"128M": 128, "256M": 256, "512M": 512, "1G": 1024}


def gcp_name(ctx, suffix: str = "") -> str:
    return ctx.label(suffix).lower().replace("_", "-").replace(" ", "-")


def network_tag(ctx) -> str:
    return gcp_name(ctx)


# ============================================================================
# DEPENDENCY TEMPLATES
# ============================================================================

@dependency_template("gcp", "network")
def gcp_network(ctx):
    ctx.add("google_compute_network", {
        "name": gcp_name(ctx, "network"),
        "auto_create_subnetworks": False,
    }, kind="network")


@dependency_template("gcp", "subnet")
def gcp_subnet(ctx):
    """Private subnetwork; outbound traffic leaves through a Cloud NAT."""
    ctx.add("google_compute_subnetwork", {
        "name": gcp_name(ctx, "subnet"),
        "ip_cidr_range": PRIMARY_SUBNET_CIDR,
        "region": VariableRef("region"),
        "network": ctx.ref("network"),
    }, kind="subnet")

    ctx.add("google_compute_router", {
        "name": gcp_name(ctx, "router"),
        "region": VariableRef("region"),
        "network": ctx.ref("network"),
    }, kind="router")

    ctx.add("google_compute_router_nat", {
        "name": gcp_name(ctx, "nat"),
        "router": ctx.ref("router", "name"),
        "region": VariableRef("region"),
        "nat_ip_allocate_option": "AUTO_ONLY",
        "source_subnetwork_ip_ranges_to_nat": "ALL_SUBNETWORKS_ALL_IP_RANGES",
    })


@dependency_template("gcp", "security-boundary")
def gcp_firewall(ctx):
    rules = ingress_rules(ctx.provider_id, ctx.service.id, ctx.values)

    ctx.add("google_compute_firewall", {
        "name": gcp_name(ctx, "allow-ingress"),
        "network": ctx.ref("network", "name"),
        "direction": "INGRESS",
        "allow": Block({
            "protocol": "tcp",
            "ports": [str(rule["port"]) for rule in rules],
        }) if rules else None,
        "source_ranges": sorted({rule["cidr"] for rule in rules}) or None,
        "target_tags": [network_tag(ctx)],
    }, kind="security-boundary")


# ============================================================================
# PRIMARY TEMPLATES
# ============================================================================

@primary_template("gcp", "compute_instance")
def gcp_compute_instance(ctx):
    instance = ctx.add("google_compute_instance", {
        "name": ctx.value("instance_name"),
        "machine_type": ctx.value("machine_type"),
        "zone": ctx.value("zone"),
        "tags": [network_tag(ctx)],
        "boot_disk": Block({
            "initialize_params": Block({
                "image": ctx.value("image"),
                "size": ctx.number("disk_size", 20),
            }),
        }),
        "network_interface": Block({
            "subnetwork": ctx.ref("subnet"),
            "access_config": Block({}) if ctx.flag("public_ip") else None,
        }),
        "labels": LABELS,
    })

    ctx.output("instance_id", instance.ref("instance_id"), "ID of the VM instance")
    ctx.output("internal_ip", instance.ref("network_interface[0].network_ip"), "Internal IP of the VM")


@primary_template("gcp", "storage_bucket")
def gcp_storage_bucket(ctx):
    bucket = ctx.add("google_storage_bucket", {
        "name": ctx.value("bucket_name"),
        "location": ctx.value("location"),
        "storage_class": ctx.value("storage_class"),
        "uniform_bucket_level_access": True,
        "versioning": Block({"enabled": True}) if ctx.flag("versioning") else None,
        "labels": LABELS,
    })

    ctx.output("bucket_url", bucket.ref("url"), "URL of the bucket")


@primary_template("gcp", "cloud_sql")
def gcp_cloud_sql(ctx):
    instance = ctx.add("google_sql_database_instance", {
        "name": ctx.value("instance_name"),
        "database_version": ctx.value("database_version"),
        "region": VariableRef("region"),
        "deletion_protection": ctx.value("deletion_protection"),
        "settings": Block({
            "tier": ctx.value("tier"),
            "backup_configuration": Block({"enabled": True}),
        }),
    })

    database_name = ctx.value("database_name")
    if database_name:
        ctx.add("google_sql_database", {
            "name": database_name,
            "instance": instance.ref("name"),
        })

    ctx.output("connection_name", instance.ref("connection_name"), "Connection name of the instance")


@primary_template("gcp", "cloud_function")
def gcp_cloud_function(ctx):
    source = ctx.add("google_storage_bucket", {
        "name": gcp_name(ctx, "source"),
        "location": "US",
        "uniform_bucket_level_access": True,
        "labels": LABELS,
    }, role="source", graph_role="dependency")

    function = ctx.add("google_cloudfunctions_function", {
        "name": ctx.value("function_name"),
        "runtime": ctx.value("runtime"),
        "entry_point": ctx.value("entry_point"),
        "available_memory_mb": MEMORY_MB.get(ctx.value("memory"), 256),
        "source_archive_bucket": source.ref("name"),
        "source_archive_object": "function-source.zip",
        "trigger_http": True,
        "labels": LABELS,
    })

    ctx.output("function_url", function.ref("https_trigger_url"), "HTTPS trigger URL")


@primary_template("gcp", "vpc_network")
def gcp_vpc_network(ctx):
    network = ctx.add("google_compute_network", {
        "name": ctx.value("network_name"),
        "routing_mode": ctx.value("routing_mode"),
        "auto_create_subnetworks": ctx.value("auto_create_subnetworks"),
    })

    ctx.output("network_self_link", network.ref("self_link"), "Self link of the network")


@primary_template("gcp", "gke_cluster")
def gcp_gke_cluster(ctx):
    cluster = ctx.add("google_container_cluster", {
        "name": ctx.value("cluster_name"),
        "location": ctx.value("location"),
        "network": ctx.ref("network", "name"),
        "subnetwork": ctx.ref("subnet", "name"),
        "remove_default_node_pool": True,
        "initial_node_count": 1,
    })

    ctx.add("google_container_node_pool", {
        "name": gcp_name(ctx, "pool"),
        "location": ctx.value("location"),
        "cluster": cluster.ref("name"),
        "node_count": ctx.number("node_count", 3),
        "node_config": Block({
            "machine_type": ctx.value("machine_type"),
            "oauth_scopes": ["https://www.googleapis.com/auth/cloud-platform"],
            "labels": LABELS,
        }),
    }, role="pool")

    ctx.output("cluster_endpoint", cluster.ref("endpoint"), "Endpoint of the cluster", sensitive=True)


@primary_template("gcp", "firestore")
def gcp_firestore(ctx):
    database = ctx.add("google_firestore_database", {
        "name": ctx.value("database_id"),
        "location_id": ctx.value("location_id"),
        "type": ctx.value("type"),
    })

    ctx.output("database_name", database.ref("name"), "Name of the Firestore database")


@primary_template("gcp", "load_balancer")
def gcp_load_balancer(ctx):
    """Global HTTP load balancer in front of a storage backend."""
    bucket = ctx.add("google_storage_bucket", {
        "name": gcp_name(ctx, "backend"),
        "location": "US",
        "uniform_bucket_level_access": True,
        "labels": LABELS,
    }, role="backend", graph_role="dependency")

    backend = ctx.add("google_compute_backend_bucket", {
        "name": gcp_name(ctx, "backend"),
        "bucket_name": bucket.ref("name"),
        "enable_cdn": False,
    })

    url_map = ctx.add("google_compute_url_map", {
        "name": gcp_name(ctx, "url-map"),
        "default_service": backend.ref("id"),
    })

    proxy = ctx.add("google_compute_target_http_proxy", {
        "name": gcp_name(ctx, "proxy"),
        "url_map": url_map.ref("id"),
    })

    address = ctx.add("google_compute_global_address", {
        "name": gcp_name(ctx, "ip"),
    })

    ctx.add("google_compute_global_forwarding_rule", {
        "name": ctx.value("lb_name"),
        "target": proxy.ref("id"),
        "ip_address": address.ref("address"),
        "port_range": "80",
    })

    ctx.output("load_balancer_ip", address.ref("address"), "Public IP of the load balancer")


@primary_template("gcp", "pubsub_topic")
def gcp_pubsub_topic(ctx):
    topic = ctx.add("google_pubsub_topic", {
        "name": ctx.value("topic_name"),
        "message_retention_duration": ctx.value("message_retention_duration"),
        "labels": LABELS,
    })

    if ctx.flag("create_subscription"):
        ctx.add("google_pubsub_subscription", {
            "name": gcp_name(ctx, "sub"),
            "topic": topic.ref("name"),
            "ack_deadline_seconds": 20,
            "labels": LABELS,
        })

    ctx.output("topic_id", topic.ref("id"), "ID of the topic")


@primary_template("gcp", "iam_service_account")
def gcp_iam_service_account(ctx):
    account = ctx.add("google_service_account", {
        "account_id": ctx.value("account_id"),
        "display_name": ctx.value("display_name") or ctx.value("account_id"),
    })

    project_role = ctx.value("project_role")
    if project_role:
        ctx.add("google_project_iam_member", {
            "project": VariableRef("project_id"),
            "role": project_role,
            "member": Interpolation(("serviceAccount:", account.ref("email"))),
        })

    ctx.output("service_account_email", account.ref("email"), "Email of the service account")


@primary_template("gcp", "cloud_monitoring")
def gcp_cloud_monitoring(ctx):
    channel = None
    email = ctx.value("notification_email")
    if email:
        channel = ctx.add("google_monitoring_notification_channel", {
            "display_name": ctx.label("email"),
            "type": "email",
            "labels": {"email_address": email},
        })

    policy = ctx.add("google_monitoring_alert_policy", {
        "display_name": ctx.value("workspace_name"),
        "combiner": "OR",
        "conditions": Block({
            "display_name": "CPU utilization",
            "condition_threshold": Block({
                "filter": 'metric.type="compute.googleapis.com/instance/cpu/utilization" AND resource.type="gce_instance"',
                "comparison": "COMPARISON_GT",
                "threshold_value": float(ctx.value("cpu_threshold")),
                "duration": "300s",
                "aggregations": Block({
                    "alignment_period": "300s",
                    "per_series_aligner": "ALIGN_MEAN",
                }),
            }),
        }),
        "notification_channels": [channel.ref("name")] if channel else None,
    })

    ctx.output("alert_policy_name", policy.ref("name"), "Name of the alert policy")
