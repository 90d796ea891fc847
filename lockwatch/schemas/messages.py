"""
Push channel wire protocol.

client -> server:  {"type": "subscribe", "channel": "hot-accounts"}
server -> client:  connected | hot-accounts-update | error
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from lockwatch.schemas.accounts import HotAccountRecord

HOT_ACCOUNTS_CHANNEL = "hot-accounts"


class SubscribeMessage(BaseModel):
    """Sent once each time the connection opens."""
    type: Literal["subscribe"] = "subscribe"
    channel: str = HOT_ACCOUNTS_CHANNEL


class ConnectedMessage(BaseModel):
    type: Literal["connected"]
    message: str = ""


class HotAccountsUpdateMessage(BaseModel):
    type: Literal["hot-accounts-update"]
    data: List[HotAccountRecord]


class ErrorMessage(BaseModel):
    type: Literal["error"]
    message: Optional[str] = None


ServerMessage = Annotated[
    Union[ConnectedMessage, HotAccountsUpdateMessage, ErrorMessage],
    Field(discriminator="type"),
]

SERVER_MESSAGE_TYPES = frozenset({"connected", "hot-accounts-update", "error"})

server_message_adapter: TypeAdapter = TypeAdapter(ServerMessage)
