from langchain_openai import AzureChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage
from typing import List, Optional
import inspect
import os

from ..utils.logger_utils import setup_logging
from .provider_registry import (
    CapabilityKind,
    ProviderRegistry,
    PromptSession,
    SummarizerSession,
    WriterSession,
    SessionOptions,
    SummarizerOptions,
    WriterOptions,
)

logger = setup_logging(__name__)

logger.debug(f"🔧 Azure endpoint configured: {'Yes' if os.getenv('AZURE_OPENAI_API_ENDPOINT') else 'No'}")
logger.debug(f"🔧 API key configured: {'Yes' if os.getenv('AZURE_OPENAI_API_KEY') else 'No'}")

# Global registry instance
_provider_registry = None


def _deployment_for(kind: CapabilityKind) -> Optional[str]:
    """Deployment name for a capability, e.g. AZURE_OPENAI_LLM_DEPLOYMENT_NAME_WRITER."""
    return os.getenv(f"AZURE_OPENAI_LLM_DEPLOYMENT_NAME_{kind.value.upper()}") or None


def _credentials_configured() -> bool:
    return all(
        os.getenv(key)
        for key in ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_API_ENDPOINT", "AZURE_OPENAI_API_VERSION")
    )


def _temperature() -> Optional[float]:
    value = os.getenv("TEMPERATURE_GPT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"⚠️ Ignoring invalid TEMPERATURE_GPT value: {value}")
        return None


def _initialize_llm(kind: CapabilityKind) -> AzureChatOpenAI:
    """
    Initialize and return an AzureChatOpenAI client for the given capability.

    Args:
        kind (CapabilityKind): Which deployment to use.

    Returns:
        AzureChatOpenAI: A fresh client, owned by exactly one session.
    """
    deployment = _deployment_for(kind)
    logger.debug(f"🎯 Creating {kind.value.upper()} LLM with deployment: {deployment}")

    try:
        llm = AzureChatOpenAI(
            azure_deployment=deployment,
            api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            azure_endpoint=os.getenv("AZURE_OPENAI_API_ENDPOINT"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION"),
            temperature=_temperature(),
        )
        logger.debug(f"✅ {kind.value.upper()} LLM initialized successfully")
        return llm
    except Exception as e:
        logger.error(f"❌ Failed to initialize LLM ({kind.value}): {e}")
        logger.error(f"❌ Error type: {type(e).__name__}")
        raise


class _AzureChatSession:
    """Shared plumbing: one chat client, an optional system instruction, explicit release."""

    def __init__(self, llm: AzureChatOpenAI, system_prompt: Optional[str] = None):
        self._llm = llm
        self._system_prompt = system_prompt
        self._destroyed = False

    async def _invoke(self, text: str) -> str:
        if self._destroyed:
            raise RuntimeError("Session has already been destroyed")

        messages: List = []
        if self._system_prompt:
            messages.append(SystemMessage(content=self._system_prompt))
        messages.append(HumanMessage(content=text))

        response = await self._llm.ainvoke(messages)
        content = response.content if hasattr(response, 'content') else str(response)
        if isinstance(content, list):
            # Content blocks: keep the text parts only
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return content

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        client = getattr(self._llm, "root_async_client", None)
        close = getattr(client, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result


class AzurePromptSession(_AzureChatSession, PromptSession):
    def __init__(self, llm: AzureChatOpenAI, options: SessionOptions):
        super().__init__(llm, f"Always answer in the language with code '{options.output_language}'.")

    async def prompt(self, text: str) -> str:
        return await self._invoke(text)

    async def warm_up(self) -> None:
        if self._destroyed:
            raise RuntimeError("Session has already been destroyed")
        await self._llm.ainvoke([HumanMessage(content="ping")], max_tokens=1)
        logger.debug("🔌 General deployment answered the readiness ping")


class AzureSummarizerSession(_AzureChatSession, SummarizerSession):
    def __init__(self, llm: AzureChatOpenAI, options: SummarizerOptions):
        super().__init__(
            llm,
            f"You are a summarizer. Summarize the text you are given as {options.type} "
            f"of {options.length} length, formatted as {options.format}. "
            f"Answer in the language with code '{options.output_language}'. "
            "Output only the summary."
        )

    async def summarize(self, text: str) -> str:
        return await self._invoke(text)


class AzureWriterSession(_AzureChatSession, WriterSession):
    def __init__(self, llm: AzureChatOpenAI, options: WriterOptions):
        super().__init__(
            llm,
            f"You are a writer. Write in a {options.tone} tone and keep it {options.length}. "
            f"Answer in the language with code '{options.output_language}'. "
            "Output only the requested text."
        )

    async def write(self, text: str) -> str:
        return await self._invoke(text)


class AzureProviderRegistry(ProviderRegistry):
    """
    Azure OpenAI deployments exposed through LangChain.

    A capability exists when the shared credentials and its deployment name
    are set in the environment:
      - AZURE_OPENAI_LLM_DEPLOYMENT_NAME_GENERAL (required for any run)
      - AZURE_OPENAI_LLM_DEPLOYMENT_NAME_SUMMARIZER (optional)
      - AZURE_OPENAI_LLM_DEPLOYMENT_NAME_WRITER (optional)
    """

    def _configured(self, kind: CapabilityKind) -> bool:
        return _credentials_configured() and _deployment_for(kind) is not None

    def has_general(self) -> bool:
        return self._configured(CapabilityKind.GENERAL)

    def has_summarizer(self) -> bool:
        return self._configured(CapabilityKind.SUMMARIZER)

    def has_writer(self) -> bool:
        return self._configured(CapabilityKind.WRITER)

    async def create_session(self, options: SessionOptions) -> PromptSession:
        return AzurePromptSession(_initialize_llm(CapabilityKind.GENERAL), options)

    async def create_summarizer(self, options: SummarizerOptions) -> SummarizerSession:
        return AzureSummarizerSession(_initialize_llm(CapabilityKind.SUMMARIZER), options)

    async def create_writer(self, options: WriterOptions) -> WriterSession:
        return AzureWriterSession(_initialize_llm(CapabilityKind.WRITER), options)


def get_provider_registry() -> ProviderRegistry:
    """
    Get the process-wide provider registry, creating it on first use.

    Returns:
        ProviderRegistry: The Azure-backed registry.
    """
    global _provider_registry

    if _provider_registry is None:
        logger.info("🚀 Provider registry not cached, initializing...")
        _provider_registry = AzureProviderRegistry()
    return _provider_registry
