"""Ollama text generation provider"""

import logging

import aiohttp

from .base import TextGenProvider, EmailDetails, ChecklistDetails


class GenerationError(RuntimeError):
    pass


class OllamaProvider(TextGenProvider):
    """Drafts text with a local Ollama model"""

    def __init__(self, ollama_host: str, model_name: str):
        self.ollama_host = ollama_host.rstrip('/')
        self.model_name = model_name
        self.available = False

    async def check_availability(self) -> bool:
        """Check if Ollama is available"""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{self.ollama_host}/api/tags", timeout=aiohttp.ClientTimeout(total=2)) as resp:
                    self.available = resp.status == 200
                    return self.available
        except Exception as e:
            logging.debug(f"Ollama not available: {e}")
            self.available = False
            return False

    def is_available(self) -> bool:
        return self.available

    @property
    def name(self) -> str:
        return f"ollama_{self.model_name}"

    async def request_email(self, details: EmailDetails) -> str:
        lines = [
            "Generate a professional service request email for a property management company.",
            "",
            "Instructions:",
            "- The tone should be polite, clear, and professional.",
            "- Start with a clear subject line.",
            "- Address the service provider by their name.",
            "- Mention the property name and address.",
            "- Clearly state the maintenance task required, including its description.",
        ]
        if details.unit_number:
            lines.append(f"- The task is for Unit: {details.unit_number}")
        if details.component_name:
            lines.append(f"- The task relates to the following component: {details.component_name}")
        if details.scheduled_date:
            lines.append("- State the scheduled date for the service.")
        lines += [
            "- Include the additional notes provided.",
            "- End with a call to action, asking them to confirm receipt and schedule the work.",
            '- Sign off as "The Property Management Team".',
            "",
            "Details to use:",
            f"- Service Provider Name: {details.provider_name}",
            f"- Building Name: {details.building_name}",
            f"- Building Address: {details.building_address}",
            f"- Task Name: {details.task_name}",
            f"- Task Description: {details.task_description}",
        ]
        if details.unit_number:
            lines.append(f"- Unit: {details.unit_number}")
        if details.component_name:
            lines.append(f"- Component: {details.component_name}")
        if details.scheduled_date:
            lines.append(f"- Scheduled Date: {details.scheduled_date.strftime('%A, %B %d, %Y')}")
        lines += [
            f"- Additional Notes: {details.notes or 'N/A'}",
            "",
            "Generate only the email content (Subject line and body). "
            "Do not add any extra explanations or text before or after the email.",
        ]
        return await self._generate("\n".join(lines))

    async def checklist(self, details: ChecklistDetails) -> str:
        prompt = (
            "You are an expert property manager. Generate a comprehensive unit checklist "
            "for a rental property, well-organized and formatted in Markdown.\n\n"
            "Instructions:\n"
            "- Structure the checklist into logical sections appropriate for the activity.\n"
            "- For each item use checkbox syntax, e.g. '- [ ] Clean the oven inside and out.'\n"
            "- Be specific to the property type and the activity.\n\n"
            "Details to use:\n"
            f"- Unit Number: {details.unit_number}\n"
            f"- Property Type: {details.property_type}\n"
            f"- Type of Activity: {details.activity_type}\n\n"
            "Generate only the Markdown checklist content. Start directly with a title like "
            f"\"# {details.activity_type} Checklist for Unit {details.unit_number}\"."
        )
        return await self._generate(prompt)

    async def _generate(self, prompt: str) -> str:
        payload = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
        }

        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"{self.ollama_host}/api/generate",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=60)
            ) as response:
                if response.status != 200:
                    raise GenerationError(f"Ollama returned {response.status}")

                data = await response.json()
                text = data.get("response", "").strip()
                if not text:
                    raise GenerationError("Ollama returned an empty response")
                return text
