"""Settings, tool capability probe and logging setup."""
