"""
Common utilities for the Khaata client.

Modules:
- config: Environment-driven settings and logging setup
- khaata_api: Khaata REST API client and its error types
- entities: Pydantic views of backend records
- forms: Form schemas with user-facing validation messages
- toast: Success/error notifications on a rich console
- biometric: Optional biometric gate and its preference flag
"""

__all__ = [
    "biometric",
    "config",
    "entities",
    "forms",
    "khaata_api",
    "toast",
]
