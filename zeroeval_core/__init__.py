"""
zeroeval_core: hosted backend for the ZeroEval tracing SDK.

This package provides span ingestion, the signals API, the A/B testing
proxy, the OpenAI-compatible gateway, and dataset / experiment storage.

Data model: Workspace, ApiKey. Everything is scoped by workspace_id.
"""
