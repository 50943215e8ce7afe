"""Abstract base for completion providers."""

from abc import ABC, abstractmethod

SYSTEM_PROMPT = "Answer based only on the provided PDF content."


def build_user_prompt(context: str, question: str) -> str:
    return f"PDF content:\n{context}\n\nQuestion: {question}"


class CompletionProvider(ABC):
    """Base class for LLM provider implementations."""

    @abstractmethod
    async def answer(self, context: str, question: str) -> str:
        """Answer ``question`` using only ``context``.

        Returns:
            The model's answer, untrimmed.

        Raises:
            CompletionFailed: the provider rejected the call or was unreachable.
        """
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if provider holds connections."""
        pass
