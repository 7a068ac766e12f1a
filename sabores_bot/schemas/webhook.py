from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class EvolutionModel(BaseModel):
    # Evolution sends many more fields than we read.
    model_config = ConfigDict(extra="ignore")


class MessageKey(EvolutionModel):
    remoteJid: Optional[str] = None
    fromMe: Optional[bool] = None
    id: Optional[str] = None


class ExtendedTextMessage(EvolutionModel):
    text: Optional[str] = None


class ImageMessage(EvolutionModel):
    caption: Optional[str] = None
    url: Optional[str] = None
    mimetype: Optional[str] = None


class MessageContent(EvolutionModel):
    conversation: Optional[str] = None
    extendedTextMessage: Optional[ExtendedTextMessage] = None
    imageMessage: Optional[ImageMessage] = None


class MessageData(EvolutionModel):
    key: Optional[MessageKey] = None
    message: Optional[MessageContent] = None
    pushName: Optional[str] = None
    messageType: Optional[str] = None


class EvolutionWebhookEvent(EvolutionModel):
    event: Optional[str] = None
    instance: Optional[str] = None
    data: Optional[MessageData] = None


class WebhookAck(BaseModel):
    success: bool
    message: Optional[str] = None


class ConfigureWebhookRequest(BaseModel):
    webhookUrl: Optional[str] = None


class ConfigureWebhookResponse(BaseModel):
    success: bool
    message: str
    result: Any = None


class InstanceStatusResponse(BaseModel):
    success: bool
    instance: str
    status: Any = None
