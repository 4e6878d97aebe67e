from shared.clients.ClientManager import ClientManager
from shared.clients.messaging.MessagingClientInterface import MessagingClientInterface


class MessagingClientManager(ClientManager):
    """Instantiates the WhatsApp gateway client selected by MESSAGING_ENGINE (default: evolution)."""

    client_type = "messaging"
    class_prefix = "MessagingClient"
    default_engine = "evolution"

    def get_client(self) -> MessagingClientInterface:
        return self.client
