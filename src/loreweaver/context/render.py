"""
Fixed text templates for each knowledge type.

Field order is fixed and missing values render as "Unknown", so the same
records always produce the same text.
"""

from datetime import datetime, timezone
from typing import Any, Sequence

from ..sources.models import (
    Character,
    Event,
    Faction,
    Item,
    Location,
    LoreEntry,
    SessionMessage,
    WorldState,
)


UNKNOWN = "Unknown"


def show(value: Any, default: str = UNKNOWN) -> str:
    """Stringify a field, joining lists and substituting a placeholder."""
    if value is None or value == "" or value == []:
        return default
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def iso_timestamp(value: datetime | None) -> str:
    """UTC ISO-8601 with milliseconds, e.g. 2024-05-04T12:00:00.000Z."""
    if value is None:
        return UNKNOWN
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _section(header: str, bodies: Sequence[str]) -> str:
    if not bodies:
        return ""
    return f"# {header}\n\n" + "\n\n".join(bodies)


def _with_optional(lines: list[str], label: str, value: Any) -> str:
    text = "\n".join(lines)
    if value:
        text += f"\n\n{label}: {show(value)}"
    return text


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------

def format_character(c: Character) -> str:
    lines = [
        f"## {c.name or 'Unknown Character'}",
        f"Species: {show(c.species)}",
        f"Gender: {show(c.gender)}",
        f"Occupation: {show(c.occupation)}",
        f"Force User: {'Yes' if c.force_user else 'No'}",
        f"Alignment: {show(c.alignment)}",
        f"Personality: {show(c.personality)}",
    ]
    return _with_optional(lines, "Background", c.biography)


def format_location(loc: Location) -> str:
    lines = [
        f"## {loc.name or 'Unknown Location'}",
        f"Type: {show(loc.type)}",
        f"Region: {show(loc.region)}",
        f"Climate: {show(loc.climate)}",
        f"Population: {show(loc.population)}",
        f"Government: {show(loc.government)}",
    ]
    return _with_optional(lines, "Description", loc.description)


def format_faction(f: Faction) -> str:
    lines = [
        f"## {f.name or 'Unknown Faction'}",
        f"Type: {show(f.type)}",
        f"Leader: {show(f.leader)}",
        f"Headquarters: {show(f.headquarters)}",
        f"Founded: {show(f.founded)}",
        f"Ideology: {show(f.ideology)}",
        f"Goals: {show(f.goals)}",
        f"Strength: {show(f.strength)}",
    ]
    return _with_optional(lines, "Description", f.description)


def format_item(i: Item) -> str:
    lines = [
        f"## {i.name or 'Unknown Item'}",
        f"Type: {show(i.type)}",
        f"Manufacturer: {show(i.manufacturer)}",
        f"Class: {show(i.item_class)}",
        f"Rarity: {show(i.rarity)}",
    ]
    text = _with_optional(lines, "Description", i.description)
    if i.abilities:
        text += f"\n\nAbilities: {show(i.abilities)}"
    return text


def format_event(e: Event) -> str:
    return "\n".join([
        f"## {e.display_name or 'Unknown Event'}",
        f"Date: {show(e.date, 'Unknown date')}",
        f"Location: {show(e.location, 'Unknown location')}",
        f"Significance: {show(e.significance, 'Unknown significance')}",
        show(e.description, "No description available"),
    ])


def format_lore(entry: LoreEntry) -> str:
    return "\n".join([
        f"## {entry.title or 'Unknown Lore'}",
        f"Category: {show(entry.category)}",
        f"Era: {show(entry.era)}",
        f"Canonicity: {show(entry.canonicity)}",
        show(entry.content, "No content available"),
    ])


def format_message(msg: SessionMessage) -> str:
    sender = None
    if msg.sender is not None:
        sender = msg.sender.name or msg.sender.type
    return "\n".join([
        f"## Message ({iso_timestamp(msg.timestamp)})",
        f"From: {show(sender)}",
        f"Type: {show(msg.type)}",
        show(msg.content, "No content"),
    ])


def render_characters(items: Sequence[Character]) -> str:
    return _section("Characters", [format_character(c) for c in items])


def render_locations(items: Sequence[Location]) -> str:
    return _section("Locations", [format_location(loc) for loc in items])


def render_factions(items: Sequence[Faction]) -> str:
    return _section("Factions", [format_faction(f) for f in items])


def render_items(items: Sequence[Item]) -> str:
    return _section("Items", [format_item(i) for i in items])


def render_events(items: Sequence[Event]) -> str:
    return _section("Events", [format_event(e) for e in items])


def render_lore(items: Sequence[LoreEntry]) -> str:
    return _section("Star Wars Lore", [format_lore(entry) for entry in items])


def render_session_history(messages: Sequence[SessionMessage]) -> str:
    return _section("Recent Session History", [format_message(m) for m in messages])


# -----------------------------------------------------------------------------
# World state
# -----------------------------------------------------------------------------

def render_world_state(state: WorldState) -> str:
    """Multi-section summary; empty sub-collections are left out."""
    lines = [
        "# Current World State",
        "",
        f"Timestamp: {iso_timestamp(state.timestamp)}",
    ]

    def notes(note: str | None) -> None:
        if note:
            lines.append(f"  Notes: {note}")

    if state.entities.characters:
        lines += ["", "## Characters"]
        for char in state.entities.characters:
            lines.append(f"- {char.id}: Status: {show(char.status)}, Location: {show(char.location)}")
            notes(char.notes)

    if state.entities.locations:
        lines += ["", "## Locations"]
        for loc in state.entities.locations:
            lines.append(f"- {loc.id}: Status: {show(loc.status)}")
            notes(loc.notes)

    if state.entities.factions:
        lines += ["", "## Factions"]
        for faction in state.entities.factions:
            lines.append(f"- {faction.id}")
            notes(faction.notes)

    if state.plot_points:
        lines += ["", "## Active Plot Points"]
        for plot in state.plot_points:
            lines.append(f"- {show(plot.type)}: {show(plot.description)} (Status: {show(plot.status)})")

    if state.active_quests:
        lines += ["", "## Active Quests"]
        for quest in state.active_quests:
            lines.append(f"- {quest.id}: Status: {show(quest.status)}, Progress: {quest.progress}%")
            if quest.next_steps:
                lines.append(f"  Next Steps: {', '.join(quest.next_steps)}")

    return "\n".join(lines)
