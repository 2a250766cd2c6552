from .explain_gateway import ExplanationGateway, INVALID_REQUEST_MESSAGE, NOT_CONFIGURED_MESSAGE

__all__ = ["ExplanationGateway", "INVALID_REQUEST_MESSAGE", "NOT_CONFIGURED_MESSAGE"]
