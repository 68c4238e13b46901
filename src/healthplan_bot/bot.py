"""Bot wiring on the Teams AI library.

``build_bot`` validates the environment, then assembles the completion
model, the prompt manager, the action planner and the application, and
registers the turn-error hook and the SAY action. Planning, conversation
state and delivery all belong to the library.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable

from botbuilder.core import CardFactory, MemoryStorage, MessageFactory, Storage, TurnContext
from loguru import logger
from teams import Application, ApplicationOptions, TeamsAdapter
from teams.ai import AIOptions
from teams.ai.actions import ActionTurnContext, ActionTypes
from teams.ai.models import AzureOpenAIModelOptions, OpenAIModel
from teams.ai.planners import ActionPlanner, ActionPlannerOptions, PredictedSayCommand
from teams.ai.prompts import PromptManager, PromptManagerOptions, PromptTemplate
from teams.state import TurnState

from healthplan_bot.config import Settings
from healthplan_bot.logging_config import MODEL_REQUEST_LOGGER, turn_logger
from healthplan_bot.presentation.cards import create_response_card

DEFAULT_PROMPT_NAME = "chat"

ERROR_TRACE_NAME = "OnTurnError Trace"
ERROR_TRACE_VALUE_TYPE = "https://www.botframework.com/schemas/error"
ERROR_TRACE_LABEL = "TurnError"
ERROR_MESSAGES = (
    "The bot encountered an error or bug.",
    "To continue to run this bot, please fix the bot source code.",
)

# ---------------------------------------------------------------------------
# Model and adapter
# ---------------------------------------------------------------------------


def create_model(settings: Settings) -> OpenAIModel:
    """Azure OpenAI chat model bound to the configured deployment.

    Prompts and responses are always logged to ``MODEL_REQUEST_LOGGER``.
    """
    request_logger = logging.getLogger(MODEL_REQUEST_LOGGER)
    request_logger.setLevel(logging.DEBUG)

    return OpenAIModel(
        AzureOpenAIModelOptions(
            api_key=settings.azure_openai_key,
            default_model=settings.azure_openai_deployment,
            api_version=settings.azure_openai_api_version,
            endpoint=settings.azure_openai_endpoint,
            logger=request_logger,
        )
    )


def create_adapter(settings: Settings) -> TeamsAdapter:
    """Channel adapter; it authenticates inbound requests and sends replies."""
    return TeamsAdapter(settings.bot_app_config())


# ---------------------------------------------------------------------------
# Prompt resolution
# ---------------------------------------------------------------------------


class DefaultPromptResolver:
    """Loads the ``chat`` prompt and points it at the current search index.

    Settings are rebuilt on every call, so a changed deployment or index
    name is picked up by the next planning cycle. The template returned by
    the prompt manager is cached and shared, so each call returns a copy
    with its own completion config.
    """

    def __init__(
        self,
        prompts: PromptManager,
        settings_factory: Callable[[], Settings] = Settings,
        prompt_name: str = DEFAULT_PROMPT_NAME,
    ) -> None:
        self.prompts = prompts
        self.settings_factory = settings_factory
        self.prompt_name = prompt_name

    async def __call__(self, context=None, state=None, planner=None) -> PromptTemplate:
        settings = self.settings_factory()

        template = copy.copy(await self.prompts.get_prompt(self.prompt_name))
        template.config = copy.copy(template.config)
        completion = template.config.completion = copy.copy(template.config.completion)

        completion.model = settings.azure_openai_deployment
        completion.data_sources = [
            {
                "type": "azure_search",
                "parameters": {
                    "endpoint": settings.azure_search_endpoint,
                    "index_name": settings.azure_search_index,
                    "authentication": {"type": "api_key", "key": settings.azure_search_key},
                },
            }
        ]
        return template


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def on_turn_error(context: TurnContext, error: Exception) -> None:
    """Report an unhandled turn error to the log, the emulator and the user.

    Never raises: if the channel cannot be reached either, that failure is
    logged and the turn ends.
    """
    log = turn_logger(context.activity)
    log.opt(exception=error).error("[on_turn_error] unhandled error: {}", error)

    try:
        await context.send_trace_activity(
            ERROR_TRACE_NAME,
            str(error),
            ERROR_TRACE_VALUE_TYPE,
            ERROR_TRACE_LABEL,
        )
        for text in ERROR_MESSAGES:
            await context.send_activity(text)
    except Exception:
        log.exception("[on_turn_error] could not report the error to the conversation")


async def say_action(context: ActionTurnContext[PredictedSayCommand], state: TurnState) -> str:
    """Send the planner's reply as an Adaptive Card."""
    attachment = CardFactory.adaptive_card(create_response_card(context.data.response))
    await context.send_activity(MessageFactory.attachment(attachment))
    return ""


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_bot(
    settings: Settings,
    adapter: TeamsAdapter | None = None,
    *,
    settings_factory: Callable[[], Settings] = Settings,
    model: OpenAIModel | None = None,
    storage: Storage | None = None,
) -> Application:
    """Validate settings and assemble the bot application.

    Raises:
        MissingConfigurationError: If a required environment variable is unset.
    """
    settings.validate_runtime()

    prompts = PromptManager(PromptManagerOptions(prompts_folder=str(settings.prompts_folder)))
    planner = ActionPlanner(
        ActionPlannerOptions(
            model=model if model is not None else create_model(settings),
            prompts=prompts,
            default_prompt=DefaultPromptResolver(prompts, settings_factory),
        )
    )

    app = Application(
        ApplicationOptions(
            bot_app_id=settings.bot_id,
            storage=storage if storage is not None else MemoryStorage(),
            adapter=adapter if adapter is not None else create_adapter(settings),
            ai=AIOptions(planner=planner),
        )
    )
    app.error(on_turn_error)
    app.ai.action(ActionTypes.SAY_COMMAND)(say_action)

    logger.info(
        "Bot ready | deployment={} | index={} | prompts={}",
        settings.azure_openai_deployment,
        settings.azure_search_index,
        settings.prompts_folder,
    )
    return app
