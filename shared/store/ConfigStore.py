"""Persistence for the single application configuration row."""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from shared.helper.HelperConfig import HelperConfig
from shared.models.app_config import AppConfig, AppConfigUpdate
from shared.store.Database import Database
from shared.store.tables import AppConfigRow

CONFIG_ROW_ID = 1
DEFAULT_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_SYSTEM_PROMPT = "Você é um assistente útil que responde perguntas com base no contexto fornecido."


class ConfigStore:
    """Reads and wholesale-replaces the app_config row (id = 1).

    Until an operator saves a configuration, reads return defaults taken
    from the environment (DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT,
    DEFAULT_EVOLUTION_API_URL, DEFAULT_EVOLUTION_API_KEY).
    """

    def __init__(self, helper_config: HelperConfig, database: Database) -> None:
        self.logging = helper_config.get_logger()
        self._db = database
        self._defaults = AppConfig(
            open_router_api_key="",
            selected_model=helper_config.get_string_val("DEFAULT_MODEL", default=DEFAULT_MODEL),
            system_prompt=helper_config.get_string_val("DEFAULT_SYSTEM_PROMPT", default=DEFAULT_SYSTEM_PROMPT),
            evolution_api_url=helper_config.get_string_val("DEFAULT_EVOLUTION_API_URL", default=""),
            evolution_api_key=helper_config.get_string_val("DEFAULT_EVOLUTION_API_KEY", default=""),
            persisted=False,
        )

    @staticmethod
    def _to_config(row: AppConfigRow) -> AppConfig:
        return AppConfig(
            open_router_api_key=row.open_router_api_key or "",
            selected_model=row.selected_model,
            system_prompt=row.system_prompt,
            evolution_api_url=row.evolution_api_url or "",
            evolution_api_key=row.evolution_api_key or "",
            persisted=True,
        )

    def get_defaults(self) -> AppConfig:
        return self._defaults.model_copy()

    async def do_get(self) -> AppConfig:
        def _get(session: Session) -> AppConfig | None:
            row = session.get(AppConfigRow, CONFIG_ROW_ID)
            return self._to_config(row) if row is not None else None

        return await self._db.run(_get) or self.get_defaults()

    async def do_upsert(self, update: AppConfigUpdate) -> AppConfig:
        """Replace every configurable field of the row, creating it on first save."""
        values = update.model_dump()

        def _upsert(session: Session) -> AppConfig:
            row = session.get(AppConfigRow, CONFIG_ROW_ID)
            if row is None:
                row = AppConfigRow(id=CONFIG_ROW_ID)
                session.add(row)
            for field, value in values.items():
                setattr(row, field, value)
            row.updated_at = datetime.now(timezone.utc)
            session.flush()
            return self._to_config(row)

        config = await self._db.run(_upsert)
        self.logging.info("App configuration saved (model=%s)", config.selected_model)
        return config
