# Infrastructure Layer
"""
Infrastructure layer containing:
- logging/: Structured logging and the broadcast sink
- resilience/: Backoff and retry policies
- workers/: Default monitor worker implementation
"""
