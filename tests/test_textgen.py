import pytest
from datetime import date

from maintbot.services.textgen import EmailDetails, ChecklistDetails, TextGenProvider
from maintbot.services.textgen.manager import TextGenManager
from maintbot.services.textgen.template_provider import TemplateProvider


class BrokenProvider(TextGenProvider):
    async def request_email(self, details):
        raise RuntimeError("model unavailable")

    async def checklist(self, details):
        raise RuntimeError("model unavailable")

    def is_available(self):
        return True

    @property
    def name(self):
        return "broken"


DETAILS = EmailDetails(
    provider_name="Cool Air Ltd",
    building_name="Maple Court",
    building_address="12 Maple Ave",
    task_name="Inspect boiler",
    unit_number="2A",
    scheduled_date=date(2030, 5, 1),
)


@pytest.mark.asyncio
async def test_template_email():
    text = await TemplateProvider().request_email(DETAILS)

    assert text.startswith("Subject: Service request - Inspect boiler at Maple Court, Unit 2A")
    assert "Dear Cool Air Ltd," in text
    assert "Scheduled date: Wednesday, May 01, 2030" in text
    assert "Additional notes: N/A" in text
    assert text.endswith("The Property Management Team")


@pytest.mark.asyncio
async def test_template_checklist():
    text = await TemplateProvider().checklist(ChecklistDetails("4B", "Apartment", "Painting"))

    assert text.startswith("# Painting Checklist for Unit 4B")
    assert "## Walls and ceilings" in text
    assert "- [ ] Apply two finish coats" in text


@pytest.mark.asyncio
async def test_manager_falls_back_to_templates():
    manager = TextGenManager()
    manager._initialized = True
    manager.primary_provider = BrokenProvider()

    text = await manager.request_email(DETAILS)

    assert text == await TemplateProvider().request_email(DETAILS)
