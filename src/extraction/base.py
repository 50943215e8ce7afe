"""Abstract base for document text extractors."""

from abc import ABC, abstractmethod


class TextExtractor(ABC):
    """Turns raw document bytes into plain text."""

    @abstractmethod
    async def extract(self, data: bytes) -> str:
        """Extract plain text from ``data``.

        Raises:
            ExtractionFailed: the payload could not be parsed.
        """
        ...
