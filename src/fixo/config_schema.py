"""
JSON schemas for configuration validation.
"""

RUNTIMES = ["node", "python", "ruby", "php", "go", "rust", "java", "dotnet"]

OPENAI_SCHEMA = {
    "type": "object",
    "properties": {
        "api_key": {"type": ["string", "null"]},
        "base_url": {"type": ["string", "null"]},
        "organization": {"type": ["string", "null"]},
        "default_model": {"type": "string"},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "max_retries": {"type": "integer", "minimum": 0},
    },
    "additionalProperties": False,
}

AGENT_SCHEMA = {
    "type": "object",
    "properties": {
        "max_iterations": {"type": "integer", "minimum": 1},
        "parallel_tool_execution": {"type": "boolean"},
        "tool_timeout": {"type": "number", "exclusiveMinimum": 0},
        "tool_choice": {"type": "string", "enum": ["auto", "none", "required"]},
        "preload_file_tree": {"type": "boolean"},
        "single_shot": {"type": "boolean"},
        "conversational": {"type": "boolean"},
    },
    "additionalProperties": False,
}

QUEUE_SCHEMA = {
    "type": "object",
    "properties": {
        "max_retries": {"type": "integer", "minimum": 1},
        "job_timeout": {"type": "number", "exclusiveMinimum": 0},
        "persistence_retry_delay": {"type": "number", "minimum": 0},
        "retry_backoff": {"type": "number", "minimum": 0},
        "max_retry_backoff": {"type": "number", "minimum": 0},
        "stale_job_grace": {"type": "number", "minimum": 0},
    },
    "additionalProperties": False,
}

SANDBOX_SCHEMA = {
    "type": "object",
    "properties": {
        "runtime_prefix": {"type": ["string", "null"]},
        "default_timeout": {"type": "number", "exclusiveMinimum": 0},
        "memory_limit": {"type": "integer", "minimum": 1},
        "docker_url": {"type": ["string", "null"]},
        "workspace_mount": {"type": "string", "pattern": "^/"},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_file": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

RATE_LIMIT_SCHEMA = {
    "type": "object",
    "properties": {
        "enabled": {"type": "boolean"},
        "free_daily": {"type": "integer", "minimum": 1},
        "free_monthly": {"type": "integer", "minimum": 1},
        "paid_monthly": {"type": "integer", "minimum": 1},
        "contact_email": {"type": "string"},
    },
    "additionalProperties": False,
}

DATABASE_SCHEMA = {
    "type": "object",
    "properties": {
        "dsn": {"type": ["string", "null"]},
        "jobs_table": {"type": "string", "pattern": "^[a-zA-Z0-9_]+$"},
        "executions_table": {"type": "string", "pattern": "^[a-zA-Z0-9_]+$"},
        "plans_table": {"type": "string", "pattern": "^[a-zA-Z0-9_]+$"},
        "min_pool_size": {"type": "integer", "minimum": 0},
        "max_pool_size": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

BOT_SCHEMA = {
    "type": "object",
    "properties": {
        "bot_name": {"type": "string", "minLength": 1},
        "repos_dir": {"type": "string"},
        "cleanup_repositories": {"type": "boolean"},
        "runtime": {"type": "string", "enum": RUNTIMES},
        "lint_command": {"type": ["string", "null"]},
        "test_command": {"type": ["string", "null"]},
        "target_branch": {"type": "string", "minLength": 1},
        "verification_fix_attempts": {"type": "integer", "minimum": 0},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "openai": OPENAI_SCHEMA,
        "agent": AGENT_SCHEMA,
        "queue": QUEUE_SCHEMA,
        "sandbox": SANDBOX_SCHEMA,
        "logging": LOGGING_SCHEMA,
        "rate_limit": RATE_LIMIT_SCHEMA,
        "database": DATABASE_SCHEMA,
        "bot": BOT_SCHEMA,
    },
    "additionalProperties": False,
}
