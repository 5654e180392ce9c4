from pydantic import BaseModel


class WebhookResponse(BaseModel):
    message: str = "Webhook processed successfully"
