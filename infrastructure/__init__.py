"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - email: Email service abstraction (SMTP, mock)
    - events: Event bus abstraction (Redis pub/sub, in-memory)
    - shipping: Shipping label provider abstraction (EasyPost, mock)
    - observability: OpenTelemetry tracing setup
    - container: Service locator for infrastructure and domain services

This package enables:
    - Easy testing with mock implementations
    - Switching between providers without code changes
    - Loose coupling between business logic and infrastructure
"""
