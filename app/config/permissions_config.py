"""
Permission Resource Configuration
Defines every kind of resource a grant can target, the table holding its grant
rows, the column identifying the resource and the capabilities it carries.
Used by the permission evaluator, the mutator and the routes validating input.
"""

# Capability -> boolean column on the grant tables
CAPABILITY_COLUMNS = {
    "view": "can_view",
    "edit": "can_edit",
    "create": "can_create",
    "delete": "can_delete",
    "create_maintenance": "can_create_maintenance",
}

# Resource kinds and their grant tables
RESOURCE_KINDS = {
    "client": {
        "table": "user_client_permissions",
        "key_column": "client_id",
        "capabilities": ["view", "edit", "create", "delete"],
        "description": "Access to a specific client and its records"
    },
    "system": {
        "table": "user_system_permissions",
        "key_column": "resource_type",
        "capabilities": ["view", "edit", "create", "delete"],
        "description": "Access to a coarse system resource (teams, vault, ...)"
    },
    "company": {
        "table": "user_company_permissions",
        "key_column": "company_id",
        "capabilities": ["view", "edit", "delete", "create_maintenance"],
        "description": "Access to a third-party company"
    },
    "secret": {
        "table": "user_secret_permissions",
        "key_column": "secret_id",
        "capabilities": ["view", "edit"],
        "description": "Access to a single vault secret"
    },
    "vault_group": {
        "table": "user_vault_group_permissions",
        "key_column": "group_name",
        "capabilities": ["view", "edit"],
        "description": "Access to every secret filed under a vault group"
    },
}

# Names accepted as resource ids for the "system" kind
SYSTEM_RESOURCES = {
    "companies": "Third-party companies",
    "teams": "Maintenance teams",
    "maintenance-types": "Maintenance types",
    "vault": "Credential vault",
}


def get_kind_config(kind: str) -> dict:
    """Return the config for a resource kind. Raises KeyError for unknown kinds."""
    return RESOURCE_KINDS[kind]


def get_capabilities(kind: str) -> tuple:
    return tuple(RESOURCE_KINDS[kind]["capabilities"])


def get_upsert_conflict(kind: str) -> str:
    """Columns of the (user, resource) unique constraint, in PostgREST on_conflict format"""
    return f"user_id,{RESOURCE_KINDS[kind]['key_column']}"
