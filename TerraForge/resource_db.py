"""
Service Catalog Module

Responsibility:
- In-memory registry of provisionable services per provider
- Per service: id, category, declared dependency kinds, input field schema
- Lookup functions: list_providers, list_services, get_service
- A read-only, presentation-friendly view of the catalog (describe_catalog)

Catalog data is declared as plain dicts and converted once, at import, into
frozen ServiceDefinition/FieldSpec objects shared by every request.
"""

from typing import Dict, List, Optional

import yaml

from errors import CatalogLookupError
from models import FieldSpec, ServiceDefinition


NUMBER = r"\d+"
CIDR = r"\d{1,3}(\.\d{1,3}){3}/\d{1,2}"

ENABLED_DISABLED = ["Enabled", "Disabled"]


AWS_SERVICES = [
    {
        "id": "ec2",
        "name": "EC2 Instance",
        "category": "Compute",
        "description": "Virtual server in the cloud",
        "dependencies": ["network", "subnet", "security-boundary"],
        "fields": [
            {"name": "instance_name", "kind": "string", "required": True},
            {"name": "instance_type", "kind": "enum", "required": True,
             "allowed_values": ["t2.micro", "t2.small", "t2.medium", "t3.micro", "t3.small", "t3.medium"],
             "default": "t3.micro"},
            {"name": "ami_id", "kind": "string", "required": True, "default": "ami-0c02fb55956c7d316"},
            {"name": "key_pair", "kind": "string", "required": False},
            {"name": "monitoring", "kind": "enum", "required": True, "allowed_values": ENABLED_DISABLED, "default": "Disabled"},
            {"name": "ebs_optimized", "kind": "boolean", "required": True, "default": False},
            {"name": "root_volume_size", "kind": "string", "required": True, "default": "20", "pattern": NUMBER},
            {"name": "root_volume_type", "kind": "enum", "required": True,
             "allowed_values": ["gp3", "gp2", "io1", "io2"], "default": "gp3"},
            {"name": "elastic_ip", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "s3",
        "name": "S3 Bucket",
        "category": "Storage",
        "description": "Object storage service",
        "dependencies": [],
        "fields": [
            {"name": "bucket_name", "kind": "string", "required": True},
            {"name": "versioning", "kind": "enum", "required": True, "allowed_values": ENABLED_DISABLED, "default": "Enabled"},
            {"name": "public_access_block", "kind": "enum", "required": True,
             "allowed_values": ["Block all public access", "Allow public access"],
             "default": "Block all public access"},
            {"name": "encryption", "kind": "enum", "required": True, "allowed_values": ["AES256", "aws:kms"], "default": "AES256"},
            {"name": "object_lock", "kind": "enum", "required": False, "allowed_values": ENABLED_DISABLED, "default": "Disabled"},
            {"name": "lifecycle_policy", "kind": "enum", "required": False, "allowed_values": ENABLED_DISABLED, "default": "Disabled"},
        ],
    },
    {
        "id": "rds",
        "name": "RDS Database",
        "category": "Database",
        "description": "Managed relational database",
        "dependencies": ["network", "subnet", "security-boundary"],
        "fields": [
            {"name": "db_identifier", "kind": "string", "required": True},
            {"name": "engine", "kind": "enum", "required": True,
             "allowed_values": ["mysql", "postgres", "mariadb", "oracle-ee", "sqlserver-ex"]},
            {"name": "engine_version", "kind": "string", "required": True, "default": "8.0"},
            {"name": "instance_class", "kind": "enum", "required": True,
             "allowed_values": ["db.t3.micro", "db.t3.small", "db.t3.medium", "db.r5.large"], "default": "db.t3.micro"},
            {"name": "allocated_storage", "kind": "string", "required": True, "default": "20", "pattern": NUMBER},
            {"name": "storage_type", "kind": "enum", "required": True, "allowed_values": ["gp2", "gp3", "io1"], "default": "gp2"},
            {"name": "multi_az", "kind": "boolean", "required": True, "default": False},
            {"name": "backup_retention", "kind": "string", "required": True, "default": "7", "pattern": NUMBER},
            {"name": "storage_encrypted", "kind": "boolean", "required": True, "default": True},
            {"name": "username", "kind": "string", "required": True, "default": "dbadmin"},
            {"name": "password", "kind": "string", "required": True, "sensitive": True},
        ],
    },
    {
        "id": "lambda",
        "name": "Lambda Function",
        "category": "Compute",
        "description": "Serverless compute service",
        "dependencies": [],
        "fields": [
            {"name": "function_name", "kind": "string", "required": True},
            {"name": "runtime", "kind": "enum", "required": True,
             "allowed_values": ["python3.9", "python3.10", "python3.12", "nodejs18.x", "nodejs20.x", "java11", "java17", "provided.al2023"]},
            {"name": "handler", "kind": "string", "required": True, "default": "index.handler"},
            {"name": "memory_size", "kind": "enum", "required": True,
             "allowed_values": ["128", "256", "512", "1024", "2048", "3008"], "default": "128"},
            {"name": "timeout", "kind": "string", "required": True, "default": "3", "pattern": NUMBER},
            {"name": "dead_letter_queue", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "vpc",
        "name": "VPC",
        "category": "Networking",
        "description": "Virtual Private Cloud",
        "dependencies": [],
        "fields": [
            {"name": "vpc_name", "kind": "string", "required": True},
            {"name": "cidr_block", "kind": "string", "required": True, "default": "10.0.0.0/16", "pattern": CIDR},
            {"name": "enable_dns_hostnames", "kind": "boolean", "required": True, "default": True},
            {"name": "enable_dns_support", "kind": "boolean", "required": True, "default": True},
            {"name": "tenancy", "kind": "enum", "required": True, "allowed_values": ["default", "dedicated"], "default": "default"},
        ],
    },
    {
        "id": "dynamodb",
        "name": "DynamoDB Table",
        "category": "Database",
        "description": "NoSQL database service",
        "dependencies": [],
        "fields": [
            {"name": "table_name", "kind": "string", "required": True},
            {"name": "hash_key", "kind": "string", "required": True},
            {"name": "hash_key_type", "kind": "enum", "required": True, "allowed_values": ["S", "N", "B"], "default": "S"},
            {"name": "billing_mode", "kind": "enum", "required": True,
             "allowed_values": ["PAY_PER_REQUEST", "PROVISIONED"], "default": "PAY_PER_REQUEST"},
            {"name": "point_in_time_recovery", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "alb",
        "name": "Application Load Balancer",
        "category": "Networking",
        "description": "Layer 7 load balancer",
        "dependencies": ["network", "subnet", "security-boundary"],
        "fields": [
            {"name": "alb_name", "kind": "string", "required": True},
            {"name": "internal", "kind": "boolean", "required": True, "default": False},
        ],
    },
    {
        "id": "api_gateway",
        "name": "API Gateway",
        "category": "Networking",
        "description": "Managed API service",
        "dependencies": [],
        "fields": [
            {"name": "api_name", "kind": "string", "required": True},
            {"name": "protocol_type", "kind": "enum", "required": True, "allowed_values": ["HTTP", "WEBSOCKET"], "default": "HTTP"},
        ],
    },
    {
        "id": "sns",
        "name": "SNS Topic",
        "category": "Messaging",
        "description": "Simple Notification Service",
        "dependencies": [],
        "fields": [
            {"name": "topic_name", "kind": "string", "required": True},
            {"name": "fifo_topic", "kind": "boolean", "required": False, "default": False},
            {"name": "email_subscription", "kind": "string", "required": False},
        ],
    },
    {
        "id": "sqs",
        "name": "SQS Queue",
        "category": "Messaging",
        "description": "Simple Queue Service",
        "dependencies": [],
        "fields": [
            {"name": "queue_name", "kind": "string", "required": True},
            {"name": "fifo_queue", "kind": "boolean", "required": False, "default": False},
            {"name": "message_retention_seconds", "kind": "string", "required": False, "default": "345600", "pattern": NUMBER},
        ],
    },
    {
        "id": "iam_role",
        "name": "IAM Role",
        "category": "Security",
        "description": "Identity and Access Management role",
        "dependencies": [],
        "fields": [
            {"name": "role_name", "kind": "string", "required": True},
            {"name": "trusted_service", "kind": "enum", "required": True,
             "allowed_values": ["lambda.amazonaws.com", "ec2.amazonaws.com", "ecs-tasks.amazonaws.com"],
             "default": "lambda.amazonaws.com"},
            {"name": "managed_policy_arn", "kind": "string", "required": False},
        ],
    },
    {
        "id": "cloudwatch",
        "name": "CloudWatch Log Group",
        "category": "Monitoring",
        "description": "Log management service",
        "dependencies": [],
        "fields": [
            {"name": "log_group_name", "kind": "string", "required": True},
            {"name": "retention_in_days", "kind": "enum", "required": True,
             "allowed_values": ["1", "3", "7", "14", "30", "90", "365"], "default": "14"},
        ],
    },
]


GCP_SERVICES = [
    {
        "id": "compute_instance",
        "name": "Compute Engine VM",
        "category": "Compute",
        "description": "Virtual machine instance",
        "dependencies": ["network", "subnet", "security-boundary"],
        "fields": [
            {"name": "instance_name", "kind": "string", "required": True},
            {"name": "machine_type", "kind": "enum", "required": True,
             "allowed_values": ["e2-micro", "e2-small", "n1-standard-1"], "default": "e2-micro"},
            {"name": "zone", "kind": "string", "required": True, "default": "us-central1-a"},
            {"name": "image", "kind": "string", "required": True, "default": "debian-cloud/debian-12"},
            {"name": "disk_size", "kind": "string", "required": True, "default": "20", "pattern": NUMBER},
            {"name": "public_ip", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "storage_bucket",
        "name": "Cloud Storage Bucket",
        "category": "Storage",
        "description": "Object storage bucket",
        "dependencies": [],
        "fields": [
            {"name": "bucket_name", "kind": "string", "required": True},
            {"name": "location", "kind": "string", "required": True, "default": "US"},
            {"name": "storage_class", "kind": "enum", "required": True,
             "allowed_values": ["STANDARD", "NEARLINE", "COLDLINE", "ARCHIVE"], "default": "STANDARD"},
            {"name": "versioning", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "cloud_sql",
        "name": "Cloud SQL Database",
        "category": "Database",
        "description": "Managed relational database",
        "dependencies": [],
        "fields": [
            {"name": "instance_name", "kind": "string", "required": True},
            {"name": "database_version", "kind": "enum", "required": True,
             "allowed_values": ["MYSQL_8_0", "POSTGRES_13", "POSTGRES_15"]},
            {"name": "tier", "kind": "enum", "required": True,
             "allowed_values": ["db-f1-micro", "db-g1-small", "db-custom-1-3840"], "default": "db-f1-micro"},
            {"name": "deletion_protection", "kind": "boolean", "required": True, "default": False},
            {"name": "database_name", "kind": "string", "required": False},
        ],
    },
    {
        "id": "cloud_function",
        "name": "Cloud Function",
        "category": "Compute",
        "description": "Serverless compute service",
        "dependencies": [],
        "fields": [
            {"name": "function_name", "kind": "string", "required": True},
            {"name": "runtime", "kind": "enum", "required": True,
             "allowed_values": ["python311", "python312", "nodejs18", "nodejs20", "go121"]},
            {"name": "entry_point", "kind": "string", "required": True, "default": "main"},
            {"name": "memory", "kind": "enum", "required": True, "allowed_values": ["128M", "256M", "512M", "1G"], "default": "256M"},
        ],
    },
    {
        "id": "vpc_network",
        "name": "VPC Network",
        "category": "Networking",
        "description": "Virtual Private Cloud network",
        "dependencies": [],
        "fields": [
            {"name": "network_name", "kind": "string", "required": True},
            {"name": "routing_mode", "kind": "enum", "required": True, "allowed_values": ["REGIONAL", "GLOBAL"], "default": "REGIONAL"},
            {"name": "auto_create_subnetworks", "kind": "boolean", "required": True, "default": False},
        ],
    },
    {
        "id": "gke_cluster",
        "name": "GKE Cluster",
        "category": "Compute",
        "description": "Kubernetes cluster service",
        "dependencies": ["network", "subnet"],
        "fields": [
            {"name": "cluster_name", "kind": "string", "required": True},
            {"name": "location", "kind": "string", "required": True, "default": "us-central1-a"},
            {"name": "node_count", "kind": "string", "required": True, "default": "3", "pattern": NUMBER},
            {"name": "machine_type", "kind": "enum", "required": True,
             "allowed_values": ["e2-medium", "e2-standard-2", "e2-standard-4"], "default": "e2-medium"},
        ],
    },
    {
        "id": "firestore",
        "name": "Firestore Database",
        "category": "Database",
        "description": "NoSQL document database",
        "dependencies": [],
        "fields": [
            {"name": "database_id", "kind": "string", "required": True},
            {"name": "location_id", "kind": "string", "required": True, "default": "nam5"},
            {"name": "type", "kind": "enum", "required": True,
             "allowed_values": ["FIRESTORE_NATIVE", "DATASTORE_MODE"], "default": "FIRESTORE_NATIVE"},
        ],
    },
    {
        "id": "load_balancer",
        "name": "Load Balancer",
        "category": "Networking",
        "description": "HTTP(S) load balancer",
        "dependencies": [],
        "fields": [
            {"name": "lb_name", "kind": "string", "required": True},
        ],
    },
    {
        "id": "pubsub_topic",
        "name": "Pub/Sub Topic",
        "category": "Messaging",
        "description": "Messaging service",
        "dependencies": [],
        "fields": [
            {"name": "topic_name", "kind": "string", "required": True},
            {"name": "message_retention_duration", "kind": "string", "required": True, "default": "86600s", "pattern": r"\d+s"},
            {"name": "create_subscription", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "iam_service_account",
        "name": "Service Account",
        "category": "Security",
        "description": "Identity and access management",
        "dependencies": [],
        "fields": [
            {"name": "account_id", "kind": "string", "required": True},
            {"name": "display_name", "kind": "string", "required": False},
            {"name": "project_role", "kind": "string", "required": False},
        ],
    },
    {
        "id": "cloud_monitoring",
        "name": "Cloud Monitoring",
        "category": "Monitoring",
        "description": "Monitoring and alerting service",
        "dependencies": [],
        "fields": [
            {"name": "workspace_name", "kind": "string", "required": True},
            {"name": "cpu_threshold", "kind": "enum", "required": True, "allowed_values": ["0.5", "0.7", "0.8", "0.9"], "default": "0.8"},
            {"name": "notification_email", "kind": "string", "required": False},
        ],
    },
]


AZURE_SERVICES = [
    {
        "id": "virtual_machine",
        "name": "Virtual Machine",
        "category": "Compute",
        "description": "Azure virtual machine",
        "dependencies": ["resource-group", "network", "subnet", "security-boundary"],
        "fields": [
            {"name": "vm_name", "kind": "string", "required": True},
            {"name": "vm_size", "kind": "enum", "required": True,
             "allowed_values": ["Standard_B1s", "Standard_B2s", "Standard_D2s_v3"], "default": "Standard_B1s"},
            {"name": "admin_username", "kind": "string", "required": True, "default": "azureuser"},
            {"name": "ssh_public_key", "kind": "string", "required": True},
            {"name": "public_ip", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "storage_account",
        "name": "Storage Account",
        "category": "Storage",
        "description": "Azure blob storage account",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "storage_name", "kind": "string", "required": True, "pattern": r"[a-z0-9]{3,24}"},
            {"name": "account_tier", "kind": "enum", "required": True, "allowed_values": ["Standard", "Premium"], "default": "Standard"},
            {"name": "replication_type", "kind": "enum", "required": True, "allowed_values": ["LRS", "GRS", "ZRS"], "default": "LRS"},
            {"name": "create_container", "kind": "boolean", "required": False},
        ],
    },
    {
        "id": "sql_database",
        "name": "SQL Database",
        "category": "Database",
        "description": "Azure SQL managed database",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "database_name", "kind": "string", "required": True},
            {"name": "server_name", "kind": "string", "required": True},
            {"name": "admin_login", "kind": "string", "required": True, "default": "sqladmin"},
            {"name": "admin_password", "kind": "string", "required": True, "sensitive": True},
            {"name": "sku_name", "kind": "enum", "required": True, "allowed_values": ["Basic", "S0", "S1"], "default": "Basic"},
        ],
    },
    {
        "id": "function_app",
        "name": "Function App",
        "category": "Compute",
        "description": "Serverless compute service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "function_name", "kind": "string", "required": True},
            {"name": "runtime_stack", "kind": "enum", "required": True, "allowed_values": ["dotnet", "node", "python"], "default": "python"},
        ],
    },
    {
        "id": "virtual_network",
        "name": "Virtual Network",
        "category": "Networking",
        "description": "Azure virtual network",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "vnet_name", "kind": "string", "required": True},
            {"name": "address_space", "kind": "string", "required": True, "default": "10.0.0.0/16", "pattern": CIDR},
        ],
    },
    {
        "id": "aks_cluster",
        "name": "AKS Cluster",
        "category": "Compute",
        "description": "Azure Kubernetes Service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "cluster_name", "kind": "string", "required": True},
            {"name": "node_count", "kind": "string", "required": True, "default": "3", "pattern": NUMBER},
            {"name": "node_vm_size", "kind": "enum", "required": True,
             "allowed_values": ["Standard_B2s", "Standard_D2s_v3", "Standard_D4s_v3"], "default": "Standard_D2s_v3"},
        ],
    },
    {
        "id": "cosmos_db",
        "name": "Cosmos DB",
        "category": "Database",
        "description": "NoSQL database service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "account_name", "kind": "string", "required": True},
            {"name": "api_type", "kind": "enum", "required": True, "allowed_values": ["Sql", "MongoDB", "Cassandra"], "default": "Sql"},
        ],
    },
    {
        "id": "load_balancer",
        "name": "Load Balancer",
        "category": "Networking",
        "description": "Azure load balancer",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "lb_name", "kind": "string", "required": True},
            {"name": "sku", "kind": "enum", "required": True, "allowed_values": ["Basic", "Standard"], "default": "Standard"},
        ],
    },
    {
        "id": "service_bus",
        "name": "Service Bus",
        "category": "Messaging",
        "description": "Enterprise messaging service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "namespace_name", "kind": "string", "required": True},
            {"name": "sku", "kind": "enum", "required": True, "allowed_values": ["Basic", "Standard", "Premium"], "default": "Standard"},
            {"name": "queue_name", "kind": "string", "required": False},
        ],
    },
    {
        "id": "key_vault",
        "name": "Key Vault",
        "category": "Security",
        "description": "Secrets management service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "vault_name", "kind": "string", "required": True},
            {"name": "sku_name", "kind": "enum", "required": True, "allowed_values": ["standard", "premium"], "default": "standard"},
            {"name": "purge_protection", "kind": "boolean", "required": True, "default": False},
        ],
    },
    {
        "id": "log_analytics",
        "name": "Log Analytics Workspace",
        "category": "Monitoring",
        "description": "Log collection and analysis",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "workspace_name", "kind": "string", "required": True},
            {"name": "sku", "kind": "enum", "required": True, "allowed_values": ["PerGB2018", "Free"], "default": "PerGB2018"},
            {"name": "retention_in_days", "kind": "string", "required": True, "default": "30", "pattern": NUMBER},
        ],
    },
    {
        "id": "app_service",
        "name": "App Service",
        "category": "Compute",
        "description": "Web app hosting service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "app_name", "kind": "string", "required": True},
            {"name": "sku_tier", "kind": "enum", "required": True, "allowed_values": ["Free", "Basic", "Standard"], "default": "Basic"},
        ],
    },
    {
        "id": "redis_cache",
        "name": "Redis Cache",
        "category": "Database",
        "description": "In-memory data store",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "cache_name", "kind": "string", "required": True},
            {"name": "sku_name", "kind": "enum", "required": True, "allowed_values": ["Basic", "Standard", "Premium"], "default": "Basic"},
        ],
    },
    {
        "id": "application_gateway",
        "name": "Application Gateway",
        "category": "Networking",
        "description": "Web traffic load balancer",
        "dependencies": ["resource-group", "network", "subnet"],
        "fields": [
            {"name": "gateway_name", "kind": "string", "required": True},
            {"name": "capacity", "kind": "string", "required": True, "default": "2", "pattern": NUMBER},
        ],
    },
    {
        "id": "event_hub",
        "name": "Event Hub",
        "category": "Messaging",
        "description": "Big data streaming platform",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "eventhub_name", "kind": "string", "required": True},
            {"name": "partition_count", "kind": "string", "required": True, "default": "2", "pattern": NUMBER},
            {"name": "message_retention", "kind": "string", "required": True, "default": "1", "pattern": NUMBER},
        ],
    },
    {
        "id": "managed_identity",
        "name": "Managed Identity",
        "category": "Security",
        "description": "Azure AD identity service",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "identity_name", "kind": "string", "required": True},
        ],
    },
    {
        "id": "application_insights",
        "name": "Application Insights",
        "category": "Monitoring",
        "description": "Application performance monitoring",
        "dependencies": ["resource-group"],
        "fields": [
            {"name": "app_insights_name", "kind": "string", "required": True},
            {"name": "application_type", "kind": "enum", "required": True,
             "allowed_values": ["web", "java", "Node.JS", "other"], "default": "web"},
        ],
    },
]


# Provider id -> (display name, raw service entries), in display order
PROVIDERS = {
    "aws": ("Amazon Web Services", AWS_SERVICES),
    "gcp": ("Google Cloud Platform", GCP_SERVICES),
    "azure": ("Microsoft Azure", AZURE_SERVICES),
}


def _load_service(entry: dict) -> ServiceDefinition:
    fields = tuple(
        FieldSpec(
            name=f["name"],
            kind=f.get("kind", "string"),
            required=f.get("required", False),
            allowed_values=tuple(f.get("allowed_values", ())),
            default=f.get("default"),
            pattern=f.get("pattern"),
            sensitive=f.get("sensitive", False),
        )
        for f in entry.get("fields", [])
    )
    return ServiceDefinition(
        id=entry["id"],
        name=entry["name"],
        category=entry["category"],
        dependencies=tuple(entry.get("dependencies", ())),
        fields=fields,
        description=entry.get("description", ""),
    )


def _load_catalog() -> Dict[str, Dict[str, ServiceDefinition]]:
    catalog = {}
    for provider_id, (_, entries) in PROVIDERS.items():
        services = {}
        for entry in entries:
            if entry["id"] in services:
                raise ValueError(f"Duplicate service '{entry['id']}' for provider '{provider_id}'")
            services[entry["id"]] = _load_service(entry)
        catalog[provider_id] = services
    return catalog


# Loaded once; every lookup reads this snapshot
CATALOG = _load_catalog()


def list_providers() -> List[str]:
    """Retrieve provider ids in display order."""
    return list(CATALOG.keys())


def list_services(provider_id: str) -> List[ServiceDefinition]:
    """Retrieve the services of a provider in display order."""
    services = CATALOG.get(provider_id)
    if services is None:
        raise CatalogLookupError(provider_id)
    return list(services.values())


def get_service(provider_id: str, service_id: str) -> ServiceDefinition:
    """Retrieve a single service definition."""
    services = CATALOG.get(provider_id)
    if services is None:
        raise CatalogLookupError(provider_id)

    service = services.get(service_id)
    if service is None:
        raise CatalogLookupError(provider_id, service_id)

    return service


def describe_service(service: ServiceDefinition) -> dict:
    """Plain-dict view of one service, for listings and form rendering."""
    fields = []
    for spec in service.fields:
        field_view = {"name": spec.name, "type": spec.kind, "required": spec.required}
        if spec.allowed_values:
            field_view["options"] = list(spec.allowed_values)
        if spec.default is not None:
            field_view["default"] = spec.default
        if spec.sensitive:
            field_view["sensitive"] = True
        fields.append(field_view)

    return {
        "id": service.id,
        "name": service.name,
        "category": service.category,
        "description": service.description,
        "dependencies": list(service.dependencies),
        "fields": fields,
    }


def describe_catalog(provider_id: Optional[str] = None) -> dict:
    """
    Read-only view of the catalog, optionally restricted to one provider.

    The view is detached from the catalog objects; callers may mutate it freely.
    """
    provider_ids = [provider_id] if provider_id else list_providers()
    view = {}
    for pid in provider_ids:
        view[pid] = {
            "name": PROVIDERS[pid][0] if pid in PROVIDERS else pid,
            "services": [describe_service(s) for s in list_services(pid)],
        }
    return view


def render_catalog_yaml(provider_id: Optional[str] = None) -> str:
    """Render the catalog view as YAML (used by the CLI listing)."""
    return yaml.dump(describe_catalog(provider_id), sort_keys=False, default_flow_style=False, allow_unicode=True)
