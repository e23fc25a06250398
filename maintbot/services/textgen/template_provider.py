"""Template provider: deterministic drafts, always available"""

from .base import TextGenProvider, EmailDetails, ChecklistDetails

SECTIONS = {
    "move-out": ["Kitchen", "Bathroom", "Living areas", "Bedrooms", "Keys and access"],
    "move-in": ["Entrance", "Kitchen", "Bathroom", "Living areas", "Meters and utilities"],
    "painting": ["Preparation", "Walls and ceilings", "Trim and doors", "Cleanup"],
}

ITEMS = {
    "Kitchen": ["Clean the oven inside and out", "Check fridge seals and temperature", "Run every tap and check for leaks"],
    "Bathroom": ["Check toilet flush and seal", "Inspect caulking around tub and sink", "Test the extractor fan"],
    "Living areas": ["Inspect walls for holes and marks", "Test every light and outlet", "Check windows open, close and lock"],
    "Bedrooms": ["Check closet doors and rails", "Inspect flooring for damage"],
    "Keys and access": ["Collect all keys and fobs", "Record key count"],
    "Entrance": ["Test the lock and door closer", "Check smoke and CO detectors"],
    "Meters and utilities": ["Record meter readings", "Confirm heating and hot water work"],
    "Preparation": ["Move furniture away from walls", "Cover floors and fixtures", "Fill holes and sand patches"],
    "Walls and ceilings": ["Apply primer where patched", "Apply two finish coats"],
    "Trim and doors": ["Sand and paint trim", "Touch up door frames"],
    "Cleanup": ["Remove tape and covers", "Dispose of paint properly", "Return furniture"],
}


class TemplateProvider(TextGenProvider):

    def is_available(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "template"

    async def request_email(self, details: EmailDetails) -> str:
        where = details.building_name
        if details.unit_number:
            where += f", Unit {details.unit_number}"

        lines = [
            f"Subject: Service request - {details.task_name} at {where}",
            "",
            f"Dear {details.provider_name},",
            "",
            f"We would like to request your services at {details.building_name} "
            f"({details.building_address}).",
            "",
            f"Task: {details.task_name}",
        ]
        if details.task_description:
            lines.append(f"Description: {details.task_description}")
        if details.unit_number:
            lines.append(f"Unit: {details.unit_number}")
        if details.component_name:
            lines.append(f"Component: {details.component_name}")
        if details.scheduled_date:
            lines.append(f"Scheduled date: {details.scheduled_date.strftime('%A, %B %d, %Y')}")
        lines += [
            f"Additional notes: {details.notes or 'N/A'}",
            "",
            "Please confirm receipt of this request and let us know when you can schedule the work.",
            "",
            "Best regards,",
            "The Property Management Team",
        ]
        return "\n".join(lines)

    async def checklist(self, details: ChecklistDetails) -> str:
        sections = SECTIONS.get(details.activity_type.strip().lower(), SECTIONS["move-out"])
        lines = [f"# {details.activity_type} Checklist for Unit {details.unit_number}", ""]
        lines.append(f"Property type: {details.property_type}")
        for section in sections:
            lines += ["", f"## {section}"]
            lines += [f"- [ ] {item}" for item in ITEMS[section]]
        return "\n".join(lines)
