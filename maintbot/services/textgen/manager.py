"""Text generation manager - manages providers with fallback"""

import logging
from typing import Optional

from .base import TextGenProvider, EmailDetails, ChecklistDetails
from .ollama_provider import OllamaProvider
from .template_provider import TemplateProvider


class TextGenManager:
    """Uses Ollama when reachable, templates otherwise. Drafting never fails."""

    def __init__(self):
        self.primary_provider: Optional[TextGenProvider] = None
        self.fallback_provider: TextGenProvider = TemplateProvider()
        self._initialized = False

    async def initialize(self):
        """Initialize providers (call once at startup)"""
        if self._initialized:
            return

        from maintbot.config import config

        if config.OLLAMA_HOST:
            provider = OllamaProvider(config.OLLAMA_HOST, config.OLLAMA_MODEL)
            if await provider.check_availability():
                self.primary_provider = provider
                logging.info(f"Text generation provider initialized: {provider.name}")

        if not self.primary_provider:
            logging.info("Using template drafts for emails and checklists")

        self._initialized = True

    async def _draft(self, method: str, details) -> str:
        if not self._initialized:
            await self.initialize()

        if self.primary_provider:
            try:
                return await getattr(self.primary_provider, method)(details)
            except Exception as e:
                logging.error(f"{self.primary_provider.name} failed to draft {method}: {e}")

        return await getattr(self.fallback_provider, method)(details)

    async def request_email(self, details: EmailDetails) -> str:
        return await self._draft("request_email", details)

    async def checklist(self, details: ChecklistDetails) -> str:
        return await self._draft("checklist", details)


# Global instance
textgen_manager = TextGenManager()
