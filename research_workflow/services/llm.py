"""
Chat-model collaborators.

ChatModelAnalyzer and ChatModelDrafter wrap any LangChain chat model. The model
itself is chosen by ``build_chat_model`` from INFERENCE_ENGINE:

- ``openai``: ChatOpenAI with OPENAI_MODEL / OPENAI_API_KEY
- ``ollama`` (default): ChatOllama with LOCAL_LLM
"""

import logging
from typing import Any, Type

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from research_workflow.config import Config
from research_workflow.errors import AnalysisError, DraftError, StageError
from research_workflow.services.interfaces import PromptContext

logger = logging.getLogger(__name__)

# Suppress verbose HTTP logs from httpx (used by Ollama and OpenAI clients)
logging.getLogger("httpx").setLevel(logging.WARNING)


def build_chat_model(config: Config) -> BaseChatModel:
    """Create the chat model selected by the configuration."""
    if config.inference_engine == "openai":
        if not config.openai_api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")

        logger.info(f"🤖 Using OpenAI with model: {config.openai_model}")
        # GPT-5 models only accept the default temperature
        temperature = 1.0 if "gpt-5" in config.openai_model.lower() else config.temperature
        return ChatOpenAI(
            model=config.openai_model,
            api_key=config.openai_api_key,
            temperature=temperature,
            max_tokens=config.max_tokens,
        )

    logger.info(f"🦙 Using Ollama with model: {config.local_llm}")
    return ChatOllama(
        model=config.local_llm,
        temperature=config.temperature,
        num_predict=config.max_tokens,
    )


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # content blocks: keep text parts only
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "\n\n".join(parts)


class _ChatModelCollaborator:
    error_type: Type[StageError] = StageError

    def __init__(self, llm: BaseChatModel):
        self.llm = llm

    async def _complete(self, prompt: PromptContext) -> str:
        messages = [
            SystemMessage(content=prompt.system_prompt),
            HumanMessage(content=prompt.user_prompt),
        ]
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"❌ LLM call for {prompt.task} failed: {e}")
            raise self.error_type(f"LLM call for {prompt.task} failed: {e}") from e

        text = _message_text(response.content).strip()
        if not text:
            raise self.error_type(f"LLM returned an empty response for {prompt.task}")
        return text


class ChatModelAnalyzer(_ChatModelCollaborator):
    error_type = AnalysisError

    async def analyze(self, prompt: PromptContext) -> str:
        return await self._complete(prompt)


class ChatModelDrafter(_ChatModelCollaborator):
    error_type = DraftError

    async def generate(self, prompt: PromptContext) -> str:
        return await self._complete(prompt)
