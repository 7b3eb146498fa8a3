"""Business Logic Services.

This package contains the service modules that implement the call
signaling backend.

Service Categories:
- Call: request lifecycle, session settlement, history and earnings
- Connection: signaling WebSocket registry and Redis relay
- Auth / User: password hashing, access tokens, user lookup

External integrations:
- rtc_service: realtime transport credential issuance
- metrics: Prometheus counters
"""
