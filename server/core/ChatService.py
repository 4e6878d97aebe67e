"""Chat service: one retrieval-augmented turn.

search → context → prompt → language model → conversation log.
The conversation is only touched after the model replied; a missing API
key or an upstream model failure aborts the turn with nothing persisted.
"""

from pydantic import BaseModel

from server.core.ConversationAccumulator import ConversationAccumulator
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ConfigurationError
from shared.models.app_config import AppConfig
from shared.models.search import SearchOutcome, SourceReference
from shared.rag.ContextAssembler import build_context
from shared.rag.PromptComposer import build_prompt
from shared.rag.RelevanceSearch import RelevanceSearch
from shared.store.ConfigStore import ConfigStore

RETRIEVAL_DEGRADED_WARNING = "Document retrieval is unavailable; the answer was generated without document context."


class GeneratedReply(BaseModel):
    """A model reply plus what it was grounded on. Nothing persisted yet."""

    response: str
    sources: list[SourceReference] = []
    warnings: list[str] = []


class ChatService:
    """Runs chat turns for the web chat and the WhatsApp webhook."""

    def __init__(
        self,
        helper_config: HelperConfig,
        config_store: ConfigStore,
        relevance_search: RelevanceSearch,
        llm_client: LLMClientInterface,
        accumulator: ConversationAccumulator,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._config_store = config_store
        self._search = relevance_search
        self._llm = llm_client
        self._accumulator = accumulator
        self.search_limit = int(helper_config.get_number_val("SEARCH_LIMIT", default=3))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def get_ready_config(self) -> AppConfig:
        """Return the app config, or raise ConfigurationError when no API key is set."""
        app_config = await self._config_store.do_get()
        if not app_config.has_llm_api_key():
            raise ConfigurationError("Open Router API key is not configured.")
        return app_config

    async def generate_reply(self, message: str, app_config: AppConfig | None = None) -> GeneratedReply:
        """Retrieve context and ask the language model. Does not persist anything.

        Args:
            message (str): The user's question.
            app_config (AppConfig | None): Pre-fetched config; loaded when omitted.

        Returns:
            GeneratedReply: Reply text, cited sources and soft warnings.

        Raises:
            ConfigurationError: If no API key is configured.
            LLMUpstreamError: If the language model call fails.
        """
        app_config = app_config or await self.get_ready_config()

        outcome: SearchOutcome = await self._search.search_with_outcome(message, self.search_limit)
        context = build_context(outcome.documents)
        prompt = build_prompt(message, context, app_config.system_prompt)

        self.logging.info(
            "Chat turn: query=%r tier=%s documents=%d model=%s",
            message[:80],
            outcome.tier,
            len(outcome.documents),
            app_config.selected_model,
        )
        response = await self._llm.do_complete(
            system_content=prompt,
            user_content=message,
            model=app_config.selected_model,
            api_key=app_config.open_router_api_key,
        )

        return GeneratedReply(
            response=response,
            sources=[
                SourceReference(id=hit.document.id, name=hit.document.name, relevance=hit.rank)
                for hit in outcome.documents
            ],
            warnings=[RETRIEVAL_DEGRADED_WARNING] if outcome.degraded else [],
        )

    async def do_chat(self, message: str, conversation_id: str | None = None) -> tuple[GeneratedReply, str]:
        """Run a full web-chat turn and record it.

        Args:
            message (str): The user's question.
            conversation_id (str | None): Continue this conversation; a new one is started when None or blank.

        Returns:
            tuple[GeneratedReply, str]: The reply and the conversation id. For an
            unknown ``conversation_id`` the reply is still returned with that id,
            but nothing is stored.
        """
        reply = await self.generate_reply(message)

        conversation_id = (conversation_id or "").strip() or None
        if conversation_id is None:
            conversation_id = await self._accumulator.start_conversation(message, reply.response)
            persisted = True
        else:
            persisted = await self._accumulator.append_turn(conversation_id, message, reply.response)

        if persisted:
            self.logging.info("Chat turn stored in conversation %s", conversation_id, color="green")
        return reply, conversation_id
