"""Core of RagTrace: domain models, ports and services."""
