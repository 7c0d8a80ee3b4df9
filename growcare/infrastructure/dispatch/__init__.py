from growcare.infrastructure.dispatch.logging_dispatcher import LoggingDispatcher
from growcare.infrastructure.dispatch.webhook import WebhookDispatcher

__all__ = ["LoggingDispatcher", "WebhookDispatcher"]
