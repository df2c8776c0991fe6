"""Pipeline components: classification, extraction, validation, metadata."""
