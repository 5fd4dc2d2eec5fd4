"""
JSON schemas for configuration validation.
"""

SCHEDULER_SCHEMA = {
    "type": "object",
    "properties": {
        "interpreter": {"type": "string", "minLength": 1},
        "interpreter_args": {"type": "array", "items": {"type": "string"}},
        "script_extensions": {"type": "array", "items": {"type": "string"}},
        "output_dir": {"type": "string"},
        "stderr_prefix": {"type": "string"},
        "completion_banner": {"type": "boolean"},
        "max_dependencies": {"type": "integer", "minimum": 1},
        "warn_dependencies": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

EVENTS_SCHEMA = {
    "type": "object",
    "properties": {
        "max_queue_size": {"type": "integer", "minimum": 1},
        "drop_policy": {"type": "string", "enum": ["oldest", "newest"]},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "scheduler": SCHEDULER_SCHEMA,
        "events": EVENTS_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
}
