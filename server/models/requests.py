from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User message to answer.")
    conversation_id: str | None = Field(
        None, description="Existing conversation to continue; a new one is started when absent."
    )


class ValidateApiKeyRequest(BaseModel):
    api_key: str


class SendTestRequest(BaseModel):
    instance: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


############### WEBHOOK ###############

class _GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MessageKey(_GatewayModel):
    remote_jid: str | None = Field(None, alias="remoteJid")
    from_me: bool = Field(False, alias="fromMe")
    id: str | None = None


class ExtendedTextMessage(_GatewayModel):
    text: str | None = None


class ImageMessage(_GatewayModel):
    caption: str | None = None


class MessageContent(_GatewayModel):
    conversation: str | None = None
    extended_text_message: ExtendedTextMessage | None = Field(None, alias="extendedTextMessage")
    image_message: ImageMessage | None = Field(None, alias="imageMessage")


class MessageData(_GatewayModel):
    key: MessageKey = Field(default_factory=MessageKey)
    message: MessageContent | None = None
    push_name: str | None = Field(None, alias="pushName")

    @field_validator("key", mode="before")
    @classmethod
    def _null_key(cls, value):
        return {} if value is None else value

    def extract_text(self) -> str:
        """First non-empty of plain text, extended text, image caption."""
        if self.message is None:
            return ""
        candidates = [
            self.message.conversation,
            self.message.extended_text_message.text if self.message.extended_text_message else None,
            self.message.image_message.caption if self.message.image_message else None,
        ]
        return next((c for c in candidates if c), "")


class WebhookEvent(_GatewayModel):
    """Envelope of every gateway event.

    ``data`` differs per event type (an object for messages, a list for
    chat and contact updates), so it is only parsed once the event is known
    to be a message, see :meth:`message_data`.
    """

    event: str = ""
    instance: str | None = None
    data: dict | list | None = None

    def message_data(self) -> MessageData | None:
        """``data`` as a message payload, or None when it does not have that shape."""
        if not isinstance(self.data, dict):
            return None
        try:
            return MessageData.model_validate(self.data)
        except ValidationError:
            return None


class CheckNumberRequest(BaseModel):
    instance: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
