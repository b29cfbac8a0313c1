import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Tuple, TypeVar

from langchain_core.prompts import ChatPromptTemplate

from src.analysis.exceptions import ConfigurationError
from src.analysis.parsing import ParseResult
from src.analysis.schemas import PhaseOutcome
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseAgent(ABC):
    """
    Abstract base class for the case analysis agents.

    An agent owns one phase: it renders the phase prompt, calls the injected
    reasoning service and parses the response. Service and parse failures are
    absorbed into a degraded ``PhaseOutcome`` carrying the phase default.
    """

    name: str = "agent"
    tier: QualityTier = QualityTier.FAST
    max_tokens: int = 2048

    def __init__(self, reasoning):
        self.reasoning = reasoning

    @abstractmethod
    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        """
        Execute the agent's phase.
        :param state: The current pipeline state (LangGraph state).
        :return: The phase outcome; its value is the phase output.
        """
        pass

    @staticmethod
    def render(system_template: str, user_template: str, **variables: Any) -> Tuple[str, str]:
        prompt = ChatPromptTemplate.from_messages([
            ("system", system_template),
            ("user", user_template),
        ])
        system_message, user_message = prompt.format_messages(**variables)
        return system_message.content, user_message.content

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        parse: Callable[[str], ParseResult[T]],
        default: T,
        label: str = "",
    ) -> PhaseOutcome:
        label = label or self.name
        try:
            result = await self.reasoning.generate(system_prompt, user_prompt, self.max_tokens, self.tier)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("%s failed: %s", label, e)
            return PhaseOutcome.degraded(default, f"{label}: reasoning service error: {e}")

        parsed = parse(result.text)
        if not parsed.ok:
            return PhaseOutcome.degraded(parsed.value, f"{label}: unparseable response: {parsed.error}")
        return PhaseOutcome.ok(parsed.value, result.total_tokens)
