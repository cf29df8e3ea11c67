"""
Azure Generation Templates

Responsibility:
- Dependency templates: resource-group, network (virtual network), subnet,
  security-boundary (network security group + subnet association)
- One primary template per Azure catalog service

Every Azure resource is placed through placement(), which references the
synthesized resource group for both its name and location.
"""

import re

from contracts import NETWORK_CIDR, ingress_rules
from models import Block, VariableRef
from service_templates import dependency_template, primary_template


PRIMARY_SUBNET_CIDR = "10.0.1.0/24"

FIRST_RULE_PRIORITY = 1001

APP_SERVICE_SKUS = {"Free": "F1", "Basic": "B1", "Standard": "S1"}

FUNCTION_STACKS = {
    "python": {"python_version": "3.11"},
    "node": {"node_version": "18"},
    "dotnet": {"dotnet_version": "8.0"},
}


def placement(ctx) -> dict:
    return {
        "resource_group_name": ctx.ref("resource-group", "name"),
        "location": ctx.ref("resource-group", "location"),
    }


def storage_account_name(ctx, suffix: str) -> str:
    """Storage account names allow 3-24 lowercase letters and digits only."""
    stem = re.sub(r"[^a-z0-9]", "", ctx.display_name.lower())
    return f"{stem[:24 - len(suffix)]}{suffix}"


# ============================================================================
# DEPENDENCY TEMPLATES
# ============================================================================

@dependency_template("azure", "resource-group")
def azure_resource_group(ctx):
    ctx.add("azurerm_resource_group", {
        "name": ctx.label("rg"),
        "location": VariableRef("location"),
        "tags": ctx.tags("rg"),
    }, kind="resource-group")


@dependency_template("azure", "network")
def azure_network(ctx):
    ctx.add("azurerm_virtual_network", {
        "name": ctx.label("vnet"),
        **placement(ctx),
        "address_space": [NETWORK_CIDR],
        "tags": ctx.tags("vnet"),
    }, kind="network")


@dependency_template("azure", "subnet")
def azure_subnet(ctx):
    ctx.add("azurerm_subnet", {
        "name": ctx.label("subnet"),
        "resource_group_name": ctx.ref("resource-group", "name"),
        "virtual_network_name": ctx.ref("network", "name"),
        "address_prefixes": [PRIMARY_SUBNET_CIDR],
    }, kind="subnet")


@dependency_template("azure", "security-boundary")
def azure_network_security_group(ctx):
    rules = [
        Block({
            "name": rule["name"],
            "priority": FIRST_RULE_PRIORITY + index,
            "direction": "Inbound",
            "access": "Allow",
            "protocol": "Tcp",
            "source_port_range": "*",
            "destination_port_range": str(rule["port"]),
            "source_address_prefix": rule["cidr"],
            "destination_address_prefix": "*",
        })
        for index, rule in enumerate(ingress_rules(ctx.provider_id, ctx.service.id, ctx.values))
    ]

    ctx.add("azurerm_network_security_group", {
        "name": ctx.label("nsg"),
        **placement(ctx),
        "security_rule": rules or None,
        "tags": ctx.tags("nsg"),
    }, kind="security-boundary")

    if ctx.has("subnet"):
        ctx.add("azurerm_subnet_network_security_group_association", {
            "subnet_id": ctx.ref("subnet"),
            "network_security_group_id": ctx.ref("security-boundary"),
        })


# ============================================================================
# PRIMARY TEMPLATES
# ============================================================================

@primary_template("azure", "virtual_machine")
def azure_virtual_machine(ctx):
    public_ip = None
    if ctx.flag("public_ip"):
        public_ip = ctx.add("azurerm_public_ip", {
            "name": ctx.label("pip"),
            **placement(ctx),
            "allocation_method": "Static",
            "sku": "Standard",
            "tags": ctx.tags("pip"),
        })

    nic = ctx.add("azurerm_network_interface", {
        "name": ctx.label("nic"),
        **placement(ctx),
        "ip_configuration": Block({
            "name": "internal",
            "subnet_id": ctx.ref("subnet"),
            "private_ip_address_allocation": "Dynamic",
            "public_ip_address_id": public_ip.ref() if public_ip else None,
        }),
        "tags": ctx.tags("nic"),
    })

    admin = ctx.value("admin_username")
    vm = ctx.add("azurerm_linux_virtual_machine", {
        "name": ctx.value("vm_name"),
        **placement(ctx),
        "size": ctx.value("vm_size"),
        "admin_username": admin,
        "network_interface_ids": [nic.ref()],
        "admin_ssh_key": Block({
            "username": admin,
            "public_key": ctx.value("ssh_public_key"),
        }),
        "os_disk": Block({
            "caching": "ReadWrite",
            "storage_account_type": "Standard_LRS",
        }),
        "source_image_reference": Block({
            "publisher": "Canonical",
            "offer": "0001-com-ubuntu-server-jammy",
            "sku": "22_04-lts",
            "version": "latest",
        }),
        "tags": ctx.tags(),
    })

    ctx.output("vm_id", vm.ref("id"), "ID of the virtual machine")
    ctx.output("private_ip", nic.ref("private_ip_address"), "Private IP of the virtual machine")
    if public_ip:
        ctx.output("public_ip", public_ip.ref("ip_address"), "Public IP of the virtual machine")


@primary_template("azure", "storage_account")
def azure_storage_account(ctx):
    account = ctx.add("azurerm_storage_account", {
        "name": ctx.value("storage_name"),
        **placement(ctx),
        "account_tier": ctx.value("account_tier"),
        "account_replication_type": ctx.value("replication_type"),
        "min_tls_version": "TLS1_2",
        "tags": ctx.tags(),
    })

    if ctx.flag("create_container"):
        ctx.add("azurerm_storage_container", {
            "name": "content",
            "storage_account_name": account.ref("name"),
            "container_access_type": "private",
        })

    ctx.output("primary_blob_endpoint", account.ref("primary_blob_endpoint"), "Blob endpoint of the account")


@primary_template("azure", "sql_database")
def azure_sql_database(ctx):
    server = ctx.add("azurerm_mssql_server", {
        "name": ctx.value("server_name"),
        **placement(ctx),
        "version": "12.0",
        "administrator_login": ctx.value("admin_login"),
        "administrator_login_password": ctx.value("admin_password"),
        "minimum_tls_version": "1.2",
        "tags": ctx.tags("server"),
    })

    database = ctx.add("azurerm_mssql_database", {
        "name": ctx.value("database_name"),
        "server_id": server.ref(),
        "sku_name": ctx.value("sku_name"),
        "tags": ctx.tags(),
    })

    ctx.output("server_fqdn", server.ref("fully_qualified_domain_name"), "FQDN of the SQL server")
    ctx.output("database_id", database.ref("id"), "ID of the database")


@primary_template("azure", "function_app")
def azure_function_app(ctx):
    storage = ctx.add("azurerm_storage_account", {
        "name": storage_account_name(ctx, "funcsa"),
        **placement(ctx),
        "account_tier": "Standard",
        "account_replication_type": "LRS",
    })

    plan = ctx.add("azurerm_service_plan", {
        "name": ctx.label("plan"),
        **placement(ctx),
        "os_type": "Linux",
        "sku_name": "Y1",
    })

    app = ctx.add("azurerm_linux_function_app", {
        "name": ctx.value("function_name"),
        **placement(ctx),
        "service_plan_id": plan.ref(),
        "storage_account_name": storage.ref("name"),
        "storage_account_access_key": storage.ref("primary_access_key"),
        "site_config": Block({
            "application_stack": Block(dict(FUNCTION_STACKS[ctx.value("runtime_stack")])),
        }),
        "tags": ctx.tags(),
    })

    ctx.output("function_app_hostname", app.ref("default_hostname"), "Default hostname of the function app")


@primary_template("azure", "virtual_network")
def azure_virtual_network(ctx):
    vnet = ctx.add("azurerm_virtual_network", {
        "name": ctx.value("vnet_name"),
        **placement(ctx),
        "address_space": [ctx.value("address_space")],
        "tags": ctx.tags(),
    })

    ctx.output("vnet_id", vnet.ref(), "ID of the virtual network")


@primary_template("azure", "aks_cluster")
def azure_aks_cluster(ctx):
    cluster = ctx.add("azurerm_kubernetes_cluster", {
        "name": ctx.value("cluster_name"),
        **placement(ctx),
        "dns_prefix": ctx.label().lower().replace("_", "-"),
        "default_node_pool": Block({
            "name": "default",
            "node_count": ctx.number("node_count", 3),
            "vm_size": ctx.value("node_vm_size"),
        }),
        "identity": Block({"type": "SystemAssigned"}),
        "tags": ctx.tags(),
    })

    ctx.output("cluster_fqdn", cluster.ref("fqdn"), "FQDN of the cluster")


@primary_template("azure", "cosmos_db")
def azure_cosmos_db(ctx):
    api_type = ctx.value("api_type")
    capability = {"MongoDB": "EnableMongo", "Cassandra": "EnableCassandra"}.get(api_type)

    account = ctx.add("azurerm_cosmosdb_account", {
        "name": ctx.value("account_name"),
        **placement(ctx),
        "offer_type": "Standard",
        "kind": "MongoDB" if api_type == "MongoDB" else "GlobalDocumentDB",
        "capabilities": Block({"name": capability}) if capability else None,
        "consistency_policy": Block({"consistency_level": "Session"}),
        "geo_location": Block({
            "location": ctx.ref("resource-group", "location"),
            "failover_priority": 0,
        }),
        "tags": ctx.tags(),
    })

    ctx.output("cosmos_endpoint", account.ref("endpoint"), "Endpoint of the Cosmos DB account")


@primary_template("azure", "load_balancer")
def azure_load_balancer(ctx):
    sku = ctx.value("sku")

    public_ip = ctx.add("azurerm_public_ip", {
        "name": ctx.label("pip"),
        **placement(ctx),
        "allocation_method": "Static",
        "sku": sku,
        "tags": ctx.tags("pip"),
    })

    ctx.add("azurerm_lb", {
        "name": ctx.value("lb_name"),
        **placement(ctx),
        "sku": sku,
        "frontend_ip_configuration": Block({
            "name": "PublicIPAddress",
            "public_ip_address_id": public_ip.ref(),
        }),
        "tags": ctx.tags(),
    })

    ctx.output("load_balancer_ip", public_ip.ref("ip_address"), "Public IP of the load balancer")


@primary_template("azure", "service_bus")
def azure_service_bus(ctx):
    namespace = ctx.add("azurerm_servicebus_namespace", {
        "name": ctx.value("namespace_name"),
        **placement(ctx),
        "sku": ctx.value("sku"),
        "tags": ctx.tags(),
    })

    queue_name = ctx.value("queue_name")
    if queue_name:
        ctx.add("azurerm_servicebus_queue", {
            "name": queue_name,
            "namespace_id": namespace.ref(),
        })

    ctx.output("servicebus_endpoint", namespace.ref("endpoint"), "Endpoint of the namespace")


@primary_template("azure", "key_vault")
def azure_key_vault(ctx):
    client = ctx.add("azurerm_client_config", {}, mode="data", graph_role="dependency")

    vault = ctx.add("azurerm_key_vault", {
        "name": ctx.value("vault_name"),
        **placement(ctx),
        "tenant_id": client.ref("tenant_id"),
        "sku_name": ctx.value("sku_name"),
        "purge_protection_enabled": ctx.value("purge_protection"),
        "soft_delete_retention_days": 7,
        "tags": ctx.tags(),
    })

    ctx.output("vault_uri", vault.ref("vault_uri"), "URI of the key vault")


@primary_template("azure", "log_analytics")
def azure_log_analytics(ctx):
    workspace = ctx.add("azurerm_log_analytics_workspace", {
        "name": ctx.value("workspace_name"),
        **placement(ctx),
        "sku": ctx.value("sku"),
        "retention_in_days": ctx.number("retention_in_days", 30),
        "tags": ctx.tags(),
    })

    ctx.output("workspace_id", workspace.ref("workspace_id"), "Workspace (customer) ID")


@primary_template("azure", "app_service")
def azure_app_service(ctx):
    tier = ctx.value("sku_tier")

    plan = ctx.add("azurerm_service_plan", {
        "name": ctx.label("plan"),
        **placement(ctx),
        "os_type": "Linux",
        "sku_name": APP_SERVICE_SKUS[tier],
    })

    app = ctx.add("azurerm_linux_web_app", {
        "name": ctx.value("app_name"),
        **placement(ctx),
        "service_plan_id": plan.ref(),
        "site_config": Block({"always_on": tier != "Free"}),
        "tags": ctx.tags(),
    })

    ctx.output("app_hostname", app.ref("default_hostname"), "Default hostname of the web app")


@primary_template("azure", "redis_cache")
def azure_redis_cache(ctx):
    sku = ctx.value("sku_name")

    cache = ctx.add("azurerm_redis_cache", {
        "name": ctx.value("cache_name"),
        **placement(ctx),
        "capacity": 1,
        "family": "P" if sku == "Premium" else "C",
        "sku_name": sku,
        "enable_non_ssl_port": False,
        "minimum_tls_version": "1.2",
        "tags": ctx.tags(),
    })

    ctx.output("redis_hostname", cache.ref("hostname"), "Hostname of the cache")


@primary_template("azure", "application_gateway")
def azure_application_gateway(ctx):
    public_ip = ctx.add("azurerm_public_ip", {
        "name": ctx.label("pip"),
        **placement(ctx),
        "allocation_method": "Static",
        "sku": "Standard",
        "tags": ctx.tags("pip"),
    })

    frontend_ip = "frontend-ip"
    frontend_port = "http-port"
    backend_pool = "backend-pool"
    http_settings = "http-settings"
    listener = "http-listener"

    ctx.add("azurerm_application_gateway", {
        "name": ctx.value("gateway_name"),
        **placement(ctx),
        "sku": Block({
            "name": "Standard_v2",
            "tier": "Standard_v2",
            "capacity": ctx.number("capacity", 2),
        }),
        "gateway_ip_configuration": Block({
            "name": "gateway-ip",
            "subnet_id": ctx.ref("subnet"),
        }),
        "frontend_port": Block({"name": frontend_port, "port": 80}),
        "frontend_ip_configuration": Block({
            "name": frontend_ip,
            "public_ip_address_id": public_ip.ref(),
        }),
        "backend_address_pool": Block({"name": backend_pool}),
        "backend_http_settings": Block({
            "name": http_settings,
            "cookie_based_affinity": "Disabled",
            "port": 80,
            "protocol": "Http",
            "request_timeout": 60,
        }),
        "http_listener": Block({
            "name": listener,
            "frontend_ip_configuration_name": frontend_ip,
            "frontend_port_name": frontend_port,
            "protocol": "Http",
        }),
        "request_routing_rule": Block({
            "name": "routing-rule",
            "priority": 100,
            "rule_type": "Basic",
            "http_listener_name": listener,
            "backend_address_pool_name": backend_pool,
            "backend_http_settings_name": http_settings,
        }),
        "tags": ctx.tags(),
    })

    ctx.output("gateway_public_ip", public_ip.ref("ip_address"), "Public IP of the application gateway")


@primary_template("azure", "event_hub")
def azure_event_hub(ctx):
    namespace = ctx.add("azurerm_eventhub_namespace", {
        "name": ctx.label("ns"),
        **placement(ctx),
        "sku": "Standard",
        "capacity": 1,
        "tags": ctx.tags("ns"),
    })

    hub = ctx.add("azurerm_eventhub", {
        "name": ctx.value("eventhub_name"),
        "namespace_name": namespace.ref("name"),
        "resource_group_name": ctx.ref("resource-group", "name"),
        "partition_count": ctx.number("partition_count", 2),
        "message_retention": ctx.number("message_retention", 1),
    })

    ctx.output("eventhub_id", hub.ref(), "ID of the event hub")


@primary_template("azure", "managed_identity")
def azure_managed_identity(ctx):
    identity = ctx.add("azurerm_user_assigned_identity", {
        "name": ctx.value("identity_name"),
        **placement(ctx),
        "tags": ctx.tags(),
    })

    ctx.output("principal_id", identity.ref("principal_id"), "Principal ID of the identity")
    ctx.output("client_id", identity.ref("client_id"), "Client ID of the identity")


@primary_template("azure", "application_insights")
def azure_application_insights(ctx):
    workspace = ctx.add("azurerm_log_analytics_workspace", {
        "name": ctx.label("logs"),
        **placement(ctx),
        "sku": "PerGB2018",
        "retention_in_days": 30,
    })

    insights = ctx.add("azurerm_application_insights", {
        "name": ctx.value("app_insights_name"),
        **placement(ctx),
        "workspace_id": workspace.ref(),
        "application_type": ctx.value("application_type"),
        "tags": ctx.tags(),
    })

    ctx.output("instrumentation_key", insights.ref("instrumentation_key"), "Instrumentation key", sensitive=True)
    ctx.output("connection_string", insights.ref("connection_string"), "Connection string", sensitive=True)
