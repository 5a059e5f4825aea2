"""API-specific request/response models.

Domain models (WebhookEvent, ProcessingResult, etc.) are in
provisioning.models and are reused here where appropriate.

Modules:
- common: Status and shared response models
- webhooks: Webhook response models
- credentials: Credential-generation request/response models
- simulation: Sandbox simulation request models
"""

__all__: list[str] = []
