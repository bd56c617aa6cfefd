"""Unit tests for the chat-model collaborators."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from research_workflow.config import Config
from research_workflow.errors import AnalysisError, DraftError
from research_workflow.services.interfaces import PromptContext
from research_workflow.services.llm import ChatModelAnalyzer, ChatModelDrafter, build_chat_model

PROMPT = PromptContext(task="analysis", system_prompt="system", user_prompt="user")


def fake_llm(content=None, error=None):
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content=content or ""), side_effect=error)
    return llm


class TestBuildChatModel:
    def test_ollama_is_default(self):
        with patch("research_workflow.services.llm.ChatOllama") as ollama:
            build_chat_model(Config(local_llm="llama3", temperature=0.1, max_tokens=256))
        ollama.assert_called_once_with(model="llama3", temperature=0.1, num_predict=256)

    def test_openai_requires_key(self):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            build_chat_model(Config(inference_engine="openai"))

    def test_openai_model(self):
        config = Config(inference_engine="openai", openai_api_key="sk-test", openai_model="gpt-4o-mini")
        with patch("research_workflow.services.llm.ChatOpenAI") as openai:
            build_chat_model(config)
        assert openai.call_args.kwargs["temperature"] == 0.3
        assert openai.call_args.kwargs["model"] == "gpt-4o-mini"

    def test_gpt5_uses_default_temperature(self):
        config = Config(inference_engine="openai", openai_api_key="sk-test", openai_model="gpt-5-mini")
        with patch("research_workflow.services.llm.ChatOpenAI") as openai:
            build_chat_model(config)
        assert openai.call_args.kwargs["temperature"] == 1.0


class TestChatModelCollaborators:
    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(self):
        llm = fake_llm("## Key Findings\n- x")

        text = await ChatModelAnalyzer(llm).analyze(PROMPT)

        messages = llm.ainvoke.await_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert messages[1].content == "user"
        assert text == "## Key Findings\n- x"

    @pytest.mark.asyncio
    async def test_content_blocks_are_joined(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(
            return_value=AIMessage(content=[{"type": "text", "text": "one"}, {"type": "text", "text": "two"}])
        )
        assert await ChatModelDrafter(llm).generate(PROMPT) == "one\n\ntwo"

    @pytest.mark.asyncio
    async def test_analyzer_wraps_model_failure(self):
        llm = fake_llm(error=ConnectionError("refused"))
        with pytest.raises(AnalysisError, match="refused"):
            await ChatModelAnalyzer(llm).analyze(PROMPT)

    @pytest.mark.asyncio
    async def test_drafter_rejects_empty_response(self):
        with pytest.raises(DraftError, match="empty response"):
            await ChatModelDrafter(fake_llm("   ")).generate(PROMPT)
